import pytest

from dremioclone.core.models import (
    CatalogEntity,
    ClusterState,
    EntityType,
    Space,
    parse_entity,
)


def test_catalog_entity_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        CatalogEntity(path=("a",), name="a", payload={})


def test_parsed_variants_report_their_entity_type():
    assert isinstance(parse_entity({"entityType": "space", "name": "s"}), Space)
    assert parse_entity({"entityType": "folder", "path": ["s", "f"]}).entity_type is EntityType.FOLDER


def test_state_from_dict_accepts_missing_collections():
    state = ClusterState.from_dict({"catalog": [{"entityType": "space", "name": "s"}]})

    assert state.users == ()
    assert state.sources == ()
    assert len(state.catalog) == 1


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"catalog": [1]}, r"catalog\[0\] must be an object"),
        ({"users": {"userName": "admin"}}, "'users' must be a list"),
        ({"sources": ["pg"]}, r"sources\[0\] must be an object"),
    ],
)
def test_state_from_dict_rejects_non_object_entries(raw, message):
    with pytest.raises(ValueError, match=message):
        ClusterState.from_dict(raw)
