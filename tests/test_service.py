"""Tests for CrudService: reads, writes, hooks and atomicity end to end."""

import json

import pytest
from pydantic import BaseModel

from autocrud import (
    BindError,
    CrudService,
    HookError,
    HookRegistry,
    PersistenceError,
    RequestContext,
    ResolutionError,
)

from sample_models import HookedPerson, Person, Widget


def body(value) -> bytes:
    return json.dumps(value).encode()


@pytest.fixture
def people(adapter):
    return CrudService(Person, adapter)


@pytest.fixture
def hooked(adapter):
    return CrudService(HookedPerson, adapter)


@pytest.fixture
def seeded(people):
    people.create_many(
        body(
            [
                {"name": "carol", "age": 30},
                {"name": "alice", "age": 25},
                {"name": "bob", "age": 35},
                {"name": "alina", "age": 25},
            ]
        )
    )
    return people


# =============================================================================
# Create / read
# =============================================================================


class TestCreateAndRead:
    def test_round_trip(self, people):
        created = people.create(body({"name": "ann", "age": 3, "email": "a@x.io"}))
        assert created == {"id": 1, "name": "ann", "age": 3, "email": "a@x.io"}
        assert people.get("id", "1") == created

    def test_storage_names_accepted_in_payload(self, people):
        created = people.create(body({"name": "ann", "years": 4, "email_address": "e"}))
        assert (created["age"], created["email"]) == (4, "e")

    def test_unknown_payload_keys_ignored(self, people):
        created = people.create(body({"name": "ann", "nickname": "annie"}))
        assert "nickname" not in created

    def test_read_is_idempotent(self, seeded):
        assert seeded.get("name", "bob") == seeded.get("name", "bob")

    def test_read_by_storage_name(self, seeded):
        assert seeded.get("years", "35")["name"] == "bob"

    def test_read_not_found_is_none(self, people):
        assert people.get("id", "999") is None

    def test_read_unknown_field(self, people):
        with pytest.raises(ResolutionError, match="no field 'nickname'"):
            people.get("nickname", "x")

    def test_read_bad_value(self, people):
        with pytest.raises(BindError):
            people.get("id", "one")

    def test_create_many_returns_records(self, people):
        created = people.create_many(body([{"name": "a"}, {"name": "b"}]))
        assert [c["name"] for c in created] == ["a", "b"]
        assert created[0]["id"] != created[1]["id"]

    def test_create_many_empty(self, people):
        assert people.create_many(b"[]") == []

    def test_create_many_is_atomic(self, people):
        with pytest.raises(PersistenceError):
            people.create_many(body([{"name": "a"}, {"age": 3}, {"name": "c"}]))
        assert people.list({}).total == 0

    def test_malformed_payload_writes_nothing(self, people):
        with pytest.raises(BindError):
            people.create_many(body([{"name": "a"}, {"name": "b", "age": "old"}]))
        assert people.list({}).total == 0

    def test_column_defaults_loaded(self, adapter):
        widgets = CrudService(Widget, adapter)
        assert widgets.create(body({"code": "w1"}))["size"] == 0


# =============================================================================
# Hooks
# =============================================================================


class TestHooks:
    def test_create_hook_transforms(self, hooked):
        created = hooked.create(body({"name": "bob", "age": 4}))
        assert created["name"] == "BOB"
        assert created["age"] == 40
        assert hooked.get("id", str(created["id"])) == created

    def test_no_hook_binds_raw(self, people):
        assert people.create(body({"name": "bob", "age": 4}))["name"] == "bob"

    def test_hook_failure_rolls_back_batch(self, hooked):
        with pytest.raises(HookError, match="boom"):
            hooked.create_many(body([{"name": "a"}, {"name": "boom"}, {"name": "c"}]))
        assert hooked.list({}).total == 0

    def test_registered_hook_with_context(self, adapter):
        def create_widget(w: Widget, ctx: RequestContext, req: dict) -> dict:
            return {"code": f"{ctx.param('prefix')}-{req['code']}", "size": len(req["code"])}

        HookRegistry.register(Widget, "create", create_widget)
        widgets = CrudService(Widget, adapter)
        context = RequestContext(params={"prefix": ["eu"]})
        created = widgets.create(body({"code": "abc"}), context)
        assert (created["code"], created["size"]) == ("eu-abc", 3)

    def test_hook_model_output_keeps_defaults(self, adapter):
        class WidgetOut(BaseModel):
            code: str
            size: int = 7

        def create_widget(w: Widget, req: dict) -> WidgetOut:
            return WidgetOut(code=req["code"])

        HookRegistry.register(Widget, "create", create_widget)
        created = CrudService(Widget, adapter).create(body({"code": "w1"}))
        assert (created["code"], created["size"]) == ("w1", 7)

    def test_update_hook_output_written(self, hooked):
        created = hooked.create(body({"name": "bob", "age": 1}))
        updated = hooked.update("id", str(created["id"]), body({"name": "robert"}))
        assert updated["name"] == "ROBERT"
        assert updated["age"] == 10

    def test_update_hook_cannot_move_address(self, hooked):
        created = hooked.create(body({"name": "bob"}))
        updated = hooked.update("id", str(created["id"]), body({"name": "x", "id": 99}))
        assert updated["id"] == created["id"]
        assert hooked.get("id", "99") is None


# =============================================================================
# List
# =============================================================================


class TestList:
    def test_substring_filter(self, seeded):
        result = seeded.list({"name": ["li"]})
        assert sorted(r["name"] for r in result.result) == ["alice", "alina"]

    def test_membership_filter(self, seeded):
        result = seeded.list({"name": ["bob", "carol"]})
        assert result.total == 2

    def test_total_ignores_pagination(self, seeded):
        result = seeded.list({"age": ["25"], "size": ["1"], "sort": ["name"]})
        assert result.count == 1
        assert result.total == 2
        assert result.result[0]["name"] == "alice"

    def test_second_page(self, seeded):
        result = seeded.list({"sort": ["name"], "size": ["3"], "page": ["2"]})
        assert [r["name"] for r in result.result] == ["carol"]
        assert result.total == 4

    def test_projection(self, seeded):
        result = seeded.list({"select": ["name"], "sort": ["-id"]})
        assert result.result[0] == {"name": "alina"}

    def test_omit(self, seeded):
        result = seeded.list({"omit": ["years", "email"], "name": ["bob"]})
        assert result.result == [{"id": 3, "name": "bob"}]

    def test_select_all_omitted_returns_every_field(self, seeded):
        result = seeded.list({"select": ["name"], "omit": ["name"], "name": ["bob"]})
        assert result.result == [{"id": 3, "name": "bob", "age": 35, "email": None}]

    def test_bad_sort(self, seeded):
        with pytest.raises(BindError):
            seeded.list({"sort": ["nickname"]})

    def test_unknown_filters_ignored(self, seeded):
        assert seeded.list({"nickname": ["x"]}).total == 4

    def test_envelope_echo(self, seeded):
        body_ = seeded.list({"size": ["2"], "sort": ["name"]}).to_dict()
        assert body_["size"] == 2
        assert body_["sort"] == "name"
        assert body_["count"] == 2

    def test_repeated_list_is_stable(self, seeded):
        params = {"age": ["25"], "sort": ["name"], "page": ["1"], "size": ["1"]}
        first = seeded.list(params).to_dict()
        assert seeded.list(params).to_dict() == first
        assert (first["count"], first["total"]) == (1, 2)


# =============================================================================
# Update / delete
# =============================================================================


class TestUpdate:
    def test_update_by_value(self, seeded):
        updated = seeded.update("name", "bob", body({"age": 36}))
        assert updated["age"] == 36

    def test_addressing_field_not_written(self, seeded):
        updated = seeded.update("name", "bob", body({"name": "robert", "age": 1}))
        assert updated["name"] == "bob"
        assert updated["age"] == 1

    def test_updates_every_match(self, seeded):
        seeded.update("age", "25", body({"email": "same@x.io"}))
        emails = {r["name"]: r["email"] for r in seeded.list({}).result}
        assert emails["alice"] == emails["alina"] == "same@x.io"
        assert emails["bob"] is None

    def test_no_match_returns_none(self, seeded):
        assert seeded.update("name", "zed", body({"age": 1})) is None

    def test_update_many(self, seeded):
        affected = seeded.update_many(
            "name", body([{"name": "bob", "age": 1}, {"name": "alice", "email": "a@x.io"}])
        )
        assert affected == 2
        assert seeded.get("name", "bob")["age"] == 1
        assert seeded.get("name", "alice")["email"] == "a@x.io"

    def test_update_many_by_storage_name(self, seeded):
        assert seeded.update_many("years", body([{"years": 25, "email": "x"}])) == 2

    def test_update_many_requires_address(self, seeded):
        with pytest.raises(BindError, match="must carry 'name'"):
            seeded.update_many("name", body([{"name": "bob", "age": 1}, {"age": 2}]))
        assert seeded.get("name", "bob")["age"] == 35

    def test_update_many_needs_array(self, seeded):
        with pytest.raises(BindError):
            seeded.update_many("name", body({"name": "bob"}))


class TestDelete:
    def test_delete_returns_count(self, seeded):
        assert seeded.delete("age", "25") == 2
        assert seeded.list({}).total == 2

    def test_delete_nothing(self, seeded):
        assert seeded.delete("name", "zed") == 0

    def test_delete_many(self, seeded):
        assert seeded.delete_many("id", body([1, 2])) == 2
        assert [r["name"] for r in seeded.list({"sort": ["id"]}).result] == ["bob", "alina"]

    def test_delete_many_needs_array(self, seeded):
        with pytest.raises(BindError):
            seeded.delete_many("id", body({"id": 1}))

    def test_delete_unknown_field(self, seeded):
        with pytest.raises(ResolutionError):
            seeded.delete("nickname", "x")
