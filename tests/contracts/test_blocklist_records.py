# tests/contracts/test_blocklist_records.py
"""Tests for the records exchanged through the Blocklist contract."""

from datetime import UTC, datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from safemode.contracts.blocklist import Action, ActionType, BlockData, BlocklistItem
from tests.conftest import CID_V0, CID_V1, make_cid

_text = st.text(max_size=40)


class TestActionType:
    def test_values(self) -> None:
        assert [t.value for t in ActionType] == ["block", "unblock"]

    def test_validate_accepts_strings_and_members(self) -> None:
        from safemode.contracts.blocklist import validate_action_type

        assert validate_action_type("block") is ActionType.BLOCK
        assert validate_action_type(ActionType.UNBLOCK) is ActionType.UNBLOCK

    @pytest.mark.parametrize("bad", ["Block", "delete", "", None, 1])
    def test_validate_rejects_others(self, bad: object) -> None:
        from safemode.contracts.blocklist import validate_action_type
        from safemode.contracts.errors import InvalidActionTypeError

        with pytest.raises(InvalidActionTypeError) as exc_info:
            validate_action_type(bad)

        assert exc_info.value.typ == bad


class TestBlockData:
    def test_user_required(self) -> None:
        with pytest.raises(ValueError):
            BlockData(user="")

    def test_lists_become_tuples(self) -> None:
        data = BlockData(user="alice@example.com", content=["a", "b"], blocked=[CID_V0])  # type: ignore[arg-type]

        assert data.content == ("a", "b")
        assert data.blocked == (CID_V0,)

    def test_frozen(self) -> None:
        from dataclasses import FrozenInstanceError

        data = BlockData(user="alice@example.com")

        with pytest.raises(FrozenInstanceError):
            data.reason = "changed"  # type: ignore[misc]


class TestBlocklistItem:
    def test_encoding_uses_go_field_names(self) -> None:
        item = BlocklistItem(hash=CID_V1, user="alice@example.com", content=("u",), reason="DMCA")

        assert item.to_bytes() == (
            b'{"Content":["u"],"Hash":"' + CID_V1.encode() + b'","Reason":"DMCA","User":"alice@example.com"}'
        )

    def test_encoding_is_deterministic(self) -> None:
        a = BlocklistItem(hash=CID_V1, user="u", content=["x", "y"])  # type: ignore[arg-type]
        b = BlocklistItem(hash=CID_V1, user="u", content=("x", "y"))

        assert a.to_bytes() == b.to_bytes()

    @given(user=_text.filter(bool), reason=_text, content=st.lists(_text, max_size=5))
    def test_round_trip(self, user: str, reason: str, content: list[str]) -> None:
        item = BlocklistItem(hash=CID_V1, user=user, content=tuple(content), reason=reason)

        assert BlocklistItem.from_bytes(item.to_bytes()) == item

    def test_decode_tolerates_null_content(self) -> None:
        item = BlocklistItem.from_bytes(b'{"Hash":"h","User":"u","Content":null,"Reason":null}')

        assert item.content == ()
        assert item.reason == ""

    @pytest.mark.parametrize("data", [b"not json", b"[1, 2]", b'{"Hash": "h"}'])
    def test_decode_rejects_malformed(self, data: bytes) -> None:
        with pytest.raises(ValueError):
            BlocklistItem.from_bytes(data)


class TestAction:
    def test_ids_parsed_to_cids(self) -> None:
        from multiformats import CID

        action = Action(typ="block", ids=(CID_V0,))

        assert isinstance(action.ids[0], CID)
        assert str(action.ids[0]) == CID_V0

    def test_ids_required(self) -> None:
        with pytest.raises(ValueError):
            Action(typ="block", ids=())

    def test_invalid_id_rejected(self) -> None:
        from safemode.contracts.errors import InvalidIdentifierError

        with pytest.raises(InvalidIdentifierError):
            Action(typ="block", ids=("not-a-cid",))

    def test_typ_not_validated_at_construction(self) -> None:
        assert Action(typ="delete", ids=(CID_V1,)).typ == "delete"

    def test_str_format(self) -> None:
        action = Action(
            typ="block",
            ids=(CID_V1, CID_V0),
            reason="DMCA",
            user="alice@example.com",
            created_at=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        )

        assert str(action) == (f"2024-05-01T12:00:00.000000Z\t block by alice@example.com: [{CID_V1} {CID_V0}]: DMCA")

    def test_encoding_shape(self) -> None:
        import json

        action = Action(
            typ="unblock",
            ids=(CID_V1,),
            user="bob@example.com",
            created_at=datetime(2024, 5, 1, 12, 0, 0, 5, tzinfo=UTC),
        )

        decoded = json.loads(action.to_bytes())

        assert decoded == {
            "Typ": "unblock",
            "Ids": [{"/": CID_V1}],
            "Reason": "",
            "User": "bob@example.com",
            "CreatedAt": "2024-05-01T12:00:00.000005Z",
        }

    @given(
        typ=st.sampled_from(["block", "unblock"]),
        seeds=st.lists(st.text(min_size=1, max_size=8), min_size=1, max_size=4),
        reason=_text,
        user=_text,
        created_at=st.datetimes(
            min_value=datetime(2000, 1, 1),
            max_value=datetime(2100, 1, 1),
            timezones=st.just(UTC),
        ),
    )
    def test_round_trip(self, typ: str, seeds: list[str], reason: str, user: str, created_at: datetime) -> None:
        action = Action(
            typ=typ,
            ids=tuple(make_cid(s) for s in seeds),
            reason=reason,
            user=user,
            created_at=created_at,
        )

        assert Action.from_bytes(action.to_bytes()) == action

    def test_decode_accepts_plain_string_ids(self) -> None:
        action = Action.from_bytes(b'{"Typ":"block","Ids":["' + CID_V0.encode() + b'"]}')

        assert [str(i) for i in action.ids] == [CID_V0]
        assert action.created_at is None

    def test_decode_rejects_unknown_type(self) -> None:
        from safemode.contracts.errors import InvalidActionTypeError

        with pytest.raises(InvalidActionTypeError):
            Action.from_bytes(b'{"Typ":"purge","Ids":[{"/":"' + CID_V1.encode() + b'"}]}')

    def test_decode_rejects_missing_fields(self) -> None:
        with pytest.raises(ValueError):
            Action.from_bytes(b'{"Typ":"block"}')
