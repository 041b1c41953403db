"""SQL compilation and execution tests for QueryBuilder."""

import pytest

from sqlbridge.database.query import QueryBuilder


class TestSelectCompilation:
    def test_select_star_by_default(self, connection):
        assert connection.table("users").to_sql() == "select * from users"

    def test_select_columns_and_distinct(self, connection):
        query = connection.table("users").select("name", "email").distinct()
        assert query.to_sql() == "select distinct name, email from users"

    def test_add_select_appends(self, connection):
        query = connection.table("users").select("id").add_select(["name", "age"])
        assert query.to_sql() == "select id, name, age from users"

    def test_alias(self, connection):
        assert connection.table("users", "u").to_sql() == "select * from users as u"

    def test_table_prefix(self):
        from sqlbridge import Connection

        conn = Connection({"driver": "sqlite", "database": ":memory:", "prefix": "app_"})
        assert conn.table("users").where("id", 1).to_sql() == "select * from app_users where id = ?"

    def test_full_pipeline_order(self, connection):
        query = (
            connection.table("posts")
            .select("user_id", "count(*) as total")
            .join("users", "users.id", "=", "posts.user_id")
            .where("views", ">", 1)
            .group_by("user_id")
            .having("count(*)", ">", 1)
            .order_by("total", "desc")
            .limit(10)
            .offset(20)
        )
        assert query.to_sql() == (
            "select user_id, count(*) as total from posts"
            " inner join users on users.id = posts.user_id"
            " where views > ?"
            " group by user_id"
            " having count(*) > ?"
            " order by total desc"
            " limit 10 offset 20"
        )
        assert query.get_bindings() == [1, 1]


class TestWhereCompilation:
    def test_two_argument_where_means_equals(self, connection):
        query = connection.table("users").where("name", "Alice")
        assert query.to_sql() == "select * from users where name = ?"
        assert query.get_bindings() == ["Alice"]

    def test_each_predicate_uses_its_own_connective(self, connection):
        query = connection.table("users").where("a", 1).or_where("b", 2).where("c", 3)
        assert query.to_sql() == "select * from users where a = ? or b = ? and c = ?"
        assert query.get_bindings() == [1, 2, 3]

    def test_nested_where(self, connection):
        query = (
            connection.table("users")
            .where("a", 1)
            .where(lambda q: q.where("b", 2).or_where("c", 3))
        )
        assert query.to_sql() == "select * from users where a = ? and (b = ? or c = ?)"
        assert query.get_bindings() == [1, 2, 3]

    def test_nested_bindings_keep_position(self, connection):
        query = (
            connection.table("users")
            .where("a", 1)
            .or_where(lambda q: q.where("b", 2).where("c", 3))
            .where("d", 4)
        )
        assert query.to_sql() == "select * from users where a = ? or (b = ? and c = ?) and d = ?"
        assert query.get_bindings() == [1, 2, 3, 4]

    def test_empty_nested_callback_adds_nothing(self, connection):
        query = connection.table("users").where(lambda q: None)
        assert query.to_sql() == "select * from users"

    def test_mapping_where(self, connection):
        query = connection.table("users").where({"name": "Alice", "age": 30})
        assert query.to_sql() == "select * from users where (name = ? and age = ?)"
        assert query.get_bindings() == ["Alice", 30]

    def test_none_value_compiles_to_null_check(self, connection):
        assert connection.table("users").where("email", None).to_sql() == (
            "select * from users where email is null"
        )
        assert connection.table("users").where("email", "!=", None).to_sql() == (
            "select * from users where email is not null"
        )

    def test_where_in_and_not_in(self, connection):
        query = connection.table("users").where_in("id", [1, 2, 3]).or_where_not_in("age", (4,))
        assert query.to_sql() == "select * from users where id in (?, ?, ?) or age not in (?)"
        assert query.get_bindings() == [1, 2, 3, 4]

    def test_empty_in_lists(self, connection):
        assert connection.table("users").where_in("id", []).to_sql() == (
            "select * from users where 0 = 1"
        )
        query = connection.table("users").where_not_in("id", [])
        assert query.to_sql() == "select * from users where 1 = 1"
        assert query.get_bindings() == []

    def test_where_in_subquery(self, connection):
        sub = connection.table("posts").select("user_id").where("views", ">", 5)
        query = connection.table("users").where("active", 1).where_in("id", sub)
        assert query.to_sql() == (
            "select * from users where active = ? and id in (select user_id from posts where views > ?)"
        )
        assert query.get_bindings() == [1, 5]

    def test_null_checks(self, connection):
        query = connection.table("users").where_null("email").or_where_not_null("age")
        assert query.to_sql() == "select * from users where email is null or age is not null"

    def test_between(self, connection):
        query = connection.table("users").where_between("age", [18, 30]).or_where_not_between("id", (5, 9))
        assert query.to_sql() == (
            "select * from users where age between ? and ? or id not between ? and ?"
        )
        assert query.get_bindings() == [18, 30, 5, 9]

    def test_between_requires_two_values(self, connection):
        with pytest.raises(ValueError):
            connection.table("users").where_between("age", [1])

    def test_raw_and_like(self, connection):
        query = connection.table("users").where_raw("age > ? + ?", [1, 2]).where_like("name", "A%")
        assert query.to_sql() == "select * from users where age > ? + ? and name like ?"
        assert query.get_bindings() == [1, 2, "A%"]

    def test_operator_is_normalized(self, connection):
        query = connection.table("users").where("name", "LIKE", "A%")
        assert query.to_sql() == "select * from users where name like ?"

    def test_unknown_operator_raises(self, connection):
        with pytest.raises(ValueError, match="Invalid operator"):
            connection.table("users").where("id", "===", 1)

    def test_missing_value_raises(self, connection):
        with pytest.raises(ValueError):
            connection.table("users").where("id")


class TestJoinsOrderingPaging:
    def test_join_types(self, connection):
        query = (
            connection.table("users")
            .left_join("posts", "posts.user_id", "=", "users.id")
            .right_join("profiles", "profiles.user_id", "=", "users.id")
            .cross_join("roles")
        )
        assert query.to_sql() == (
            "select * from users"
            " left join posts on posts.user_id = users.id"
            " right join profiles on profiles.user_id = users.id"
            " cross join roles"
        )

    def test_invalid_join_type(self, connection):
        with pytest.raises(ValueError):
            connection.table("users").join("posts", "a", "=", "b", "outer")

    def test_order_variants(self, connection):
        query = connection.table("users").latest().oldest("id").order_by_raw("length(name) > ?", [3])
        assert query.to_sql() == (
            "select * from users order by created_at desc, id asc, length(name) > ?"
        )
        assert query.get_bindings() == [3]

    def test_random_order_is_dialect_aware(self, connection):
        assert connection.table("users").in_random_order().to_sql() == (
            "select * from users order by RANDOM()"
        )

    def test_sort_shorthand(self, connection):
        query = connection.table("users").sort("-age", "name", ("id", -1))
        assert query.to_sql() == "select * from users order by age desc, name asc, id desc"

    def test_order_bindings_follow_where_bindings(self, connection):
        query = connection.table("users").order_by_raw("id = ?", [9]).where("age", 5)
        assert query.get_bindings() == [5, 9]
        assert query.get_raw_bindings()["order"] == [9]
        assert query.get_raw_bindings()["where"] == [5]

    def test_limit_offset_coerced(self, connection):
        query = connection.table("users").limit(-5).offset("3")
        assert query.to_sql() == "select * from users limit 0 offset 3"

    def test_offset_without_limit_on_sqlite(self, connection):
        assert connection.table("users").skip(2).to_sql() == "select * from users limit -1 offset 2"

    def test_for_page(self, connection):
        assert connection.table("users").for_page(3, 10).to_sql() == (
            "select * from users limit 10 offset 20"
        )


class TestCloneSemantics:
    def test_clone_is_independent(self, connection):
        original = connection.table("users").where("a", 1)
        clone = original.clone().where("b", 2).order_by("id")

        assert original.to_sql() == "select * from users where a = ?"
        assert original.get_bindings() == [1]
        assert clone.to_sql() == "select * from users where a = ? and b = ? order by id asc"
        assert clone.get_bindings() == [1, 2]

    def test_builder_mutates_in_place(self, connection):
        query = connection.table("users")
        same = query.where("a", 1)
        assert same is query

    def test_new_query_is_blank(self, connection):
        query = connection.table("users").where("a", 1)
        fresh = query.new_query()
        assert isinstance(fresh, QueryBuilder)
        assert fresh.get_table() is None
        assert fresh.get_bindings() == []


class TestReads:
    @pytest.fixture
    def users(self, connection):
        connection.table("users").insert(
            [
                {"name": "Alice", "age": 30},
                {"name": "Bob", "age": 25},
                {"name": "Carol", "age": 41},
            ]
        )
        return connection

    def test_get_and_first(self, users):
        rows = users.table("users").where("age", ">", 26).order_by("age").get()
        assert [row["name"] for row in rows] == ["Alice", "Carol"]
        assert users.table("users").where("name", "Bob").first()["age"] == 25
        assert users.table("users").where("name", "Nobody").first() is None

    def test_find_and_value(self, users):
        assert users.table("users").find(2)["name"] == "Bob"
        assert users.table("users").where("id", 3).value("name") == "Carol"
        assert users.table("users").where("id", 99).value("name") is None

    def test_pluck(self, users):
        assert users.table("users").order_by("id").pluck("name") == ["Alice", "Bob", "Carol"]
        assert users.table("users").pluck("users.name", "id") == {1: "Alice", 2: "Bob", 3: "Carol"}

    def test_aggregates(self, users):
        query = users.table("users")
        assert query.count() == 3
        assert query.max("age") == 41
        assert query.min("age") == 25
        assert query.sum("age") == 96
        assert query.avg("age") == pytest.approx(32.0)
        assert users.table("users").where("id", 99).sum("age") == 0

    def test_aggregate_restores_select_list(self, users):
        query = users.table("users").select("name").where("age", ">", 26)
        assert query.count() == 2
        assert query.to_sql() == "select name from users where age > ?"

    def test_nested_bindings_select_the_right_rows(self, users):
        rows = (
            users.table("users")
            .where("age", ">", 20)
            .where(lambda q: q.where("name", "Bob").or_where("name", "Carol"))
            .order_by("id")
            .get(["name"])
        )
        assert rows == [{"name": "Bob"}, {"name": "Carol"}]

    def test_exists(self, users):
        assert users.table("users").where("name", "Alice").exists()
        assert users.table("users").where("name", "Zed").doesnt_exist()


class TestWrites:
    def test_insert_single_and_batch(self, connection):
        assert connection.table("users").insert({"name": "Alice"})
        assert connection.table("users").insert([{"name": "Bob", "age": 3}, {"name": "Carol"}])
        rows = connection.table("users").order_by("id").get(["name", "age"])
        assert rows == [
            {"name": "Alice", "age": None},
            {"name": "Bob", "age": 3},
            {"name": "Carol", "age": None},
        ]

    def test_insert_empty_is_noop(self, connection):
        assert connection.table("users").insert([]) is True
        assert connection.table("users").count() == 0

    def test_insert_get_id(self, connection):
        assert connection.table("users").insert_get_id({"name": "Alice"}) == 1
        assert connection.table("users").insert_get_id({"name": "Bob"}) == 2

    def test_update_binds_values_before_wheres(self, connection):
        connection.table("users").insert([{"name": "Alice", "age": 1}, {"name": "Bob", "age": 1}])
        connection.enable_query_log()

        affected = connection.table("users").where("name", "Bob").update({"age": 9})

        assert affected == 1
        entry = connection.get_query_log()[-1]
        assert entry["query"] == "update users set age = ? where name = ?"
        assert entry["bindings"] == [9, "Bob"]
        assert connection.table("users").where("name", "Bob").value("age") == 9

    def test_increment_binds_amount(self, connection):
        connection.table("posts").insert({"title": "a", "views": 1})
        connection.enable_query_log()

        connection.table("posts").where("id", 1).increment("views", 5, {"title": "b"})

        entry = connection.get_query_log()[-1]
        assert entry["query"] == "update posts set views = views + ?, title = ? where id = ?"
        assert entry["bindings"] == [5, "b", 1]
        assert connection.table("posts").find(1)["views"] == 6

        connection.table("posts").where("id", 1).decrement("views", 2)
        assert connection.table("posts").find(1)["views"] == 4

    def test_increment_rejects_non_numeric(self, connection):
        with pytest.raises(ValueError):
            connection.table("posts").increment("views", "1; drop table posts")

    def test_delete(self, connection):
        connection.table("users").insert([{"name": "A"}, {"name": "B"}, {"name": "C"}])
        assert connection.table("users").delete(1) == 1
        assert connection.table("users").where("name", "B").delete() == 1
        assert connection.table("users").pluck("name") == ["C"]

    def test_truncate(self, connection):
        connection.table("users").insert([{"name": "A"}, {"name": "B"}])
        connection.table("users").truncate()
        assert connection.table("users").count() == 0
