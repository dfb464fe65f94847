"""Tests for QueryRelay chaining and conditional application."""

import pytest

from repokit.query import Builder, QueryMagic, QueryRelay
from tests.sample_models import User


class Adults(QueryMagic):
    def magic(self, query):
        return query.where("age", ">=", 18)


class NamedFromSearch(QueryMagic):
    """Bundle carrying its own state."""

    def __init__(self, term):
        self.term = term

    def magic(self, query):
        return query.where("name", "like", f"%{self.term}%")


@pytest.fixture
def relay(db, users):
    return QueryRelay(Builder(db, User), users)


def names(rows) -> list:
    return sorted(row.name for row in rows)


class TestChaining:
    """Test that builder calls accumulate on one relay."""

    def test_every_builder_call_returns_the_relay(self, relay):
        assert relay.where("status", 1) is relay
        assert relay.or_where("name", "cy") is relay
        assert relay.where_in("id", [1, 2]) is relay
        assert relay.order_by("id") is relay
        assert relay.take(3) is relay
        assert relay.with_("posts") is relay

    def test_calls_accumulate_on_the_same_builder(self, relay, seeded):
        builder = relay.get_query()
        relay.where("status", 1).where("age", ">", 18)

        assert relay.get_query() is builder
        assert names(builder.get()) == ["ada", "di"]

    def test_set_query_discards_predicates(self, db, relay, seeded):
        relay.where("name", "ada")
        relay.set_query(Builder(db, User))

        assert relay.get_query().is_clean
        assert relay.get_query().count() == 5

    def test_get_repository(self, relay, users):
        assert relay.get_repository() is users

    def test_with_array_and_without_array(self, relay):
        relay.with_array(["posts"])
        assert "posts" in relay.get_query()._eager

        relay.without_array(["posts"])
        assert relay.get_query().is_clean

    def test_raw_and_select_raw(self, relay, seeded):
        relay.raw("age + 1").select_raw("age * :factor", {"factor": 2}).where("name", "di")

        user, plus_one, doubled = relay.get_query().first()
        assert (user.name, plus_one, doubled) == ("di", 26, 50)

    def test_union_accepts_another_relay(self, db, relay, users, seeded):
        other = QueryRelay(Builder(db, User), users).where("name", "ed")
        relay.where("name", "ada").union(other)
        assert names(relay.get_query().get()) == ["ada", "ed"]


class TestConditionalApplication:
    """Test tap, when, when_multiple and magic."""

    def test_tap_passes_the_relay(self, relay, seeded):
        seen = []
        result = relay.tap(lambda q: seen.append(q.where("status", 0)))

        assert result is relay
        assert seen == [relay]
        assert names(relay.get_query().get()) == ["cy"]

    def test_when_true_applies_first_callable(self, relay, seeded):
        relay.when(True, lambda q: q.where("name", "ada"), lambda q: q.where("name", "bob"))
        assert names(relay.get_query().get()) == ["ada"]

    def test_when_false_applies_second_callable(self, relay, seeded):
        relay.when(False, lambda q: q.where("name", "ada"), lambda q: q.where("name", "bob"))
        assert names(relay.get_query().get()) == ["bob"]

    def test_when_false_without_fallback_is_a_no_op(self, relay):
        assert relay.when(False, lambda q: q.where("name", "ada")) is relay
        assert relay.get_query().is_clean

    def test_when_multiple_applies_true_pairs(self, relay, seeded):
        relay.when_multiple(
            [True, False, True],
            [
                lambda q: q.where("status", 1),
                lambda q: q.where("name", "nobody"),
                lambda q: q.where("age", "<", 20),
            ],
        )
        assert names(relay.get_query().get()) == ["bob"]

    def test_when_multiple_rejects_length_mismatch(self, relay):
        with pytest.raises(ValueError):
            relay.when_multiple([True, True], [lambda q: q])

    def test_magic(self, relay, seeded):
        assert relay.magic(Adults()) is relay
        assert names(relay.get_query().get()) == ["ada", "cy", "di"]

    def test_magic_with_state(self, relay, seeded):
        relay.magic(NamedFromSearch("d"))
        assert names(relay.get_query().get()) == ["ada", "di", "ed"]

    def test_when_magic_without_bundle_is_a_no_op(self, relay):
        assert relay.when_magic(None) is relay
        assert relay.get_query().is_clean

    def test_when_magic_with_bundle(self, relay, seeded):
        relay.when_magic(Adults()).where("status", 1)
        assert names(relay.get_query().get()) == ["ada", "di"]

    def test_query_magic_is_abstract(self):
        with pytest.raises(TypeError):
            QueryMagic()
