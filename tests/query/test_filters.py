import uuid

import pytest
from sqlalchemy import Uuid

from promptvault.query import (
    Eq,
    Neq,
    apply_provider_filter,
    bind_positional,
    encode_filter_value,
    parse_filter_value,
)

BASE = "UPDATE user_api_keys SET is_active_gen = $1"


def test_neq_prefix_becomes_inequality():
    params: list = []
    query, out = apply_provider_filter("SELECT * FROM t", params, "neq.acme")
    assert query == "SELECT * FROM t WHERE provider != $1"
    assert out == ["acme"]
    assert out is params


def test_plain_value_becomes_equality_after_existing_params():
    query, params = apply_provider_filter("SELECT * FROM t", ["x"], "acme")
    assert query == "SELECT * FROM t WHERE provider = $2"
    assert params == ["x", "acme"]


def test_tagged_ops_are_used_as_given():
    query, params = apply_provider_filter(BASE, [False], Neq("openai"))
    assert query == BASE + " WHERE provider != $2"
    assert params == [False, "openai"]

    query, params = apply_provider_filter(BASE, [True], Eq("neq.literal"))
    assert query == BASE + " WHERE provider = $2"
    assert params == [True, "neq.literal"]


@pytest.mark.parametrize("provider", [None, ""])
def test_empty_provider_is_a_no_op(provider):
    query, params = apply_provider_filter("SELECT 1", [1], provider)
    assert query == "SELECT 1"
    assert params == [1]


def test_parse_and_encode_filter_values():
    assert parse_filter_value("neq.x") == Neq("x")
    assert parse_filter_value("x") == Eq("x")
    assert parse_filter_value("neq.") == Neq("")
    assert encode_filter_value(Neq("x")) == "neq.x"
    assert encode_filter_value(Eq(3)) == "3"


def test_bind_positional_rewrites_placeholders():
    clause, binds = bind_positional("SELECT * FROM t WHERE a = $1 AND b != $2", [1, "z"])
    assert str(clause) == "SELECT * FROM t WHERE a = :p1 AND b != :p2"
    assert binds == {"p1": 1, "p2": "z"}


def test_bind_positional_accepts_types():
    user_id = uuid.uuid4()
    clause, binds = bind_positional(
        "DELETE FROM t WHERE user_id = $1", [user_id], types={1: Uuid(as_uuid=True)}
    )
    assert binds == {"p1": user_id}
    assert isinstance(clause._bindparams["p1"].type, Uuid)


def test_bind_positional_rejects_missing_param():
    with pytest.raises(ValueError):
        bind_positional("SELECT * FROM t WHERE a = $2", ["only-one"])
