"""prompt_toolkit style for the questionary prompts of dremio-clone.

Loading into a cluster writes to it, so the confirmation question is shown
in the warning colour of the rich theme in `output.py`; the answer echoes in
the title colour.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

QUESTIONARY_STYLE_CONFIRM = Style.from_dict(
    {
        "qmark": "bold ansicyan",
        "question": "bold ansiyellow",
        "answer": "bold ansicyan",
        "instruction": "ansibrightblack",
    }
)
