from dremioclone.core.sql import extract_dependencies


def test_extract_simple_dotted_reference():
    assert extract_dependencies("SELECT * FROM Sales.raw.orders") == [
        ["Sales", "raw", "orders"]
    ]


def test_extract_quoted_segments_and_joins():
    sql = """
        SELECT o.id, c.name
        FROM "Sales"."raw.2024".orders AS o
        LEFT OUTER JOIN Sales.customers c ON o.cid = c.id
        JOIN `Marketing`.leads USING (id)
    """

    assert extract_dependencies(sql) == [
        ["Sales", "raw.2024", "orders"],
        ["Sales", "customers"],
        ["Marketing", "leads"],
    ]


def test_extract_comma_separated_from_list():
    sql = "select * from a.t1 x, a.t2 y, a.t3 where x.id = y.id"

    assert extract_dependencies(sql) == [["a", "t1"], ["a", "t2"], ["a", "t3"]]


def test_extract_subqueries_and_deduplicates():
    sql = (
        "SELECT * FROM (SELECT id FROM s.v1) q "
        "JOIN s.v2 ON q.id = s.v2.id "
        "WHERE q.id IN (SELECT id FROM S.V1)"
    )

    assert extract_dependencies(sql) == [["s", "v1"], ["s", "v2"]]


def test_extract_ignores_cte_names_and_function_from_keyword():
    sql = """
        WITH recent (id) AS (SELECT id FROM s.events),
             top AS (SELECT * FROM recent)
        SELECT EXTRACT(YEAR FROM ts), TRIM(BOTH ' ' FROM name)
        FROM top JOIN s.users ON top.id = s.users.id
    """

    assert extract_dependencies(sql) == [["s", "events"], ["s", "users"]]


def test_extract_ignores_comments_and_strings():
    sql = """
        -- FROM commented.out
        /* JOIN also.commented */
        SELECT 'FROM not.a.table' AS label FROM "@alice".scratch
    """

    assert extract_dependencies(sql) == [["@alice", "scratch"]]


def test_extract_returns_empty_for_values_only_sql():
    assert extract_dependencies("SELECT 1") == []
