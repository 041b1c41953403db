"""Repository wrapper over a model class."""

import pytest

from sqlbridge import NotFoundError, Repository

from ..models import User


class UserRepository(Repository[User]):
    model_class = User

    def active(self):
        return self.query().where("active", 1).order_by("id").get()


@pytest.fixture
def users(seeded):
    return UserRepository()


class TestRepository:
    def test_requires_model_class(self):
        with pytest.raises(ValueError):
            Repository()

    def test_plain_instance(self, seeded):
        assert Repository(User).count() == 3

    def test_custom_query_method(self, users):
        assert [u["name"] for u in users.active()] == ["Alice", "Carol"]

    def test_find_variants(self, users):
        assert users.find(1)["name"] == "Alice"
        assert users.find(9) is None
        with pytest.raises(NotFoundError):
            users.find_or_fail(9)
        assert users.find_by("email", "bob@example.com").get_key() == 2
        assert [u.get_key() for u in users.find_all_by("active", 1)] == [1, 3]

    def test_find_where(self, users):
        found = users.find_where(name=["Alice", "Bob", "Zed"], active=1)
        assert [u["name"] for u in found] == ["Alice"]

    def test_create_update_delete(self, users):
        dave = users.create(name="Dave", age=50)
        assert dave.exists

        updated = users.update(dave.get_key(), {"age": 51})
        assert updated["age"] == 51
        assert users.update(999, {"age": 1}) is None

        assert users.delete(dave.get_key()) is True
        assert users.delete(dave.get_key()) is False
        assert not users.exists(dave.get_key())
        assert users.exists(1)

    def test_paginate(self, users):
        page = users.paginate(per_page=2, page=2, columns=["id", "name"])
        assert page.total == 3
        assert [u.get_attributes() for u in page.data] == [{"id": 3, "name": "Carol"}]

    def test_first_or_create_and_update_or_create(self, users):
        assert users.first_or_create({"name": "Alice"}).get_key() == 1
        assert users.update_or_create({"name": "Alice"}, {"age": 31})["age"] == 31
        assert users.count() == 3

    def test_query_shortcuts(self, users):
        assert [u["name"] for u in users.order_by("age", "desc").get()] == ["Carol", "Alice", "Bob"]
        assert users.latest("id").first()["name"] == "Carol"
        assert users.oldest("id").first()["name"] == "Alice"
        alice = users.with_("posts").where("id", 1).first()
        assert alice.relation_loaded("posts")
