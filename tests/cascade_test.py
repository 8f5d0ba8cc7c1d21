import logging
from typing import TYPE_CHECKING

import pytest
from mock import MagicMock, patch

from accord.cascade import CascadeController
from accord.constants import MANAGE_ROLES, PERMISSION_KEYS, SEND_MESSAGES, VIEW_CHANNEL
from accord.exc import StoreError
from accord.repositories.member import DocumentMemberRepository
from accord.repositories.paths import member_path, role_path

if TYPE_CHECKING:
    from pytest.logging import LogCaptureFixture
    from tests.setup import SetupTest
    from typing import List


def _create_server(setup):
    # type: (SetupTest) -> None
    setup.create_server("server", owner="olivia")
    setup.create_role("server", "everyone", "everyone", {"viewChannels": True})
    setup.create_role("server", "support", "Support", {"sendMessages": True}, position=1)
    setup.add_member("server", "olivia", role="owner")
    setup.add_member("server", "alice", role_ids=["support"])
    setup.add_member("server", "bob")


def _granted(setup, uid):
    # type: (SetupTest, str) -> List[str]
    perms = setup.member_document("server", uid).get("perms", {})
    return sorted(key for key, value in perms.items() if value)


def test_queue_is_deduplicated(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.member_changed("server", "alice")
    cascade.role_permissions_changed("server", "support")
    cascade.role_deleted("server", "gone", ["alice", "bob"])
    assert cascade.pending == [("server", "alice"), ("server", "bob")]

    result = cascade.drain()
    assert sorted(result.updated) == ["alice", "bob"]
    assert cascade.pending == []
    assert _granted(setup, "alice") == sorted([SEND_MESSAGES, VIEW_CHANNEL])
    assert _granted(setup, "bob") == [VIEW_CHANNEL]

    # Recomputation is idempotent, so only the owner, never queued before, is written.
    cascade.default_role_changed("server")
    result = cascade.drain()
    assert result.updated == ["olivia"]
    assert sorted(result.unchanged) == ["alice", "bob"]


def test_recompute_all(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.recompute_all("server")
    cascade.drain()
    assert _granted(setup, "olivia") == sorted(PERMISSION_KEYS)


def test_drain_groups_by_server(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    setup.add_member("other", "zed")
    cascade = setup.service_factory.create_cascade_controller()
    cascade.member_changed("server", "alice")
    cascade.member_changed("other", "zed")
    cascade.member_changed("server", "bob")
    with patch.object(
        cascade.permission_service,
        "recompute_members",
        wraps=cascade.permission_service.recompute_members,
    ) as recompute_members:
        cascade.drain()
    assert [c[0] for c in recompute_members.call_args_list] == [
        ("server", ["alice", "bob"]),
        ("other", ["zed"]),
    ]


def test_drain_reports_failures(setup, caplog):
    # type: (SetupTest, LogCaptureFixture) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.member_changed("server", "alice")
    with patch.object(setup.store, "batch_write", side_effect=StoreError("unavailable")):
        with caplog.at_level(logging.WARNING, logger="accord.cascade"):
            result = cascade.drain()
    assert result.failed_uids == ["alice"]
    assert "could not be written: alice" in caplog.text

    # The mutation is not rolled back and the member can be repaired later.
    cascade.member_changed("server", "alice")
    assert cascade.drain().updated == ["alice"]


def test_drain_reports_read_failures(setup, caplog):
    # type: (SetupTest, LogCaptureFixture) -> None
    _create_server(setup)
    setup.add_member("other", "zed")
    cascade = setup.service_factory.create_cascade_controller()
    cascade.member_changed("server", "alice")
    cascade.member_changed("server", "bob")
    cascade.member_changed("other", "zed")

    list_members = DocumentMemberRepository.list_members

    def failing_list_members(repository, server_id):
        # type: (DocumentMemberRepository, str) -> object
        if server_id == "server":
            raise StoreError("unavailable")
        return list_members(repository, server_id)

    with patch.object(DocumentMemberRepository, "list_members", failing_list_members):
        with caplog.at_level(logging.WARNING, logger="accord.cascade"):
            result = cascade.drain()
    assert result.failed_uids == ["alice", "bob"]
    assert result.failures["alice"] == "unavailable"
    assert result.updated == ["zed"]
    assert cascade.pending == []
    assert "could not be written: alice, bob" in caplog.text


def test_nested_drain(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    nested = []  # type: List[object]

    def recompute_members(server_id, uids):
        # type: (str, List[str]) -> object
        nested.append(cascade.drain())
        return original(server_id, uids)

    original = cascade.permission_service.recompute_members
    cascade.member_changed("server", "alice")
    with patch.object(cascade.permission_service, "recompute_members", recompute_members):
        result = cascade.drain()
    assert result.updated == ["alice"]
    assert len(nested) == 1
    assert nested[0].updated == []  # type: ignore[attr-defined]


def test_attach_requires_store(setup):
    # type: (SetupTest) -> None
    cascade = CascadeController(MagicMock(), MagicMock())
    with pytest.raises(ValueError):
        cascade.attach("server")


def test_attached_member_changes(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.attach("server")
    cascade.attach("server")

    setup.add_member("server", "carol", role_ids=["support"])
    assert _granted(setup, "carol") == sorted([SEND_MESSAGES, VIEW_CHANNEL])

    setup.store.write_document(member_path("server", "carol"), {"roleIds": []})
    assert _granted(setup, "carol") == [VIEW_CHANNEL]

    # Changes to unrelated fields do not trigger a recompute.
    with patch.object(cascade, "member_changed") as member_changed:
        setup.store.write_document(member_path("server", "carol"), {"nickname": "Caz"})
    assert member_changed.call_count == 0

    cascade.detach("server")
    setup.store.write_document(member_path("server", "carol"), {"roleIds": ["support"]})
    assert _granted(setup, "carol") == [VIEW_CHANNEL]


def test_attached_role_changes(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.recompute_all("server")
    cascade.drain()
    cascade.attach("server")

    setup.create_role("server", "support", "Support", {"manageRoles": True}, position=1)
    assert _granted(setup, "alice") == sorted([MANAGE_ROLES, VIEW_CHANNEL])
    assert _granted(setup, "bob") == [VIEW_CHANNEL]

    # Cosmetic changes do not trigger a recompute.
    with patch.object(cascade, "role_permissions_changed") as role_permissions_changed:
        setup.store.write_document(role_path("server", "support"), {"color": "#ff0000"})
    assert role_permissions_changed.call_count == 0
    assert _granted(setup, "alice") == sorted([MANAGE_ROLES, VIEW_CHANNEL])

    setup.create_role("server", "everyone", "everyone", {"viewChannels": True, "addReactions": 1})
    assert _granted(setup, "bob") == sorted(["ADD_REACTIONS", VIEW_CHANNEL])


def test_attached_role_deletion(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    setup.create_channel("server", "queue", isPrivate=True, allowedRoleIds=["support"])
    cascade = setup.service_factory.create_cascade_controller()
    cascade.recompute_all("server")
    cascade.drain()
    cascade.attach("server")

    # A role removed directly from the store has its references pruned.
    setup.store.delete_document(role_path("server", "support"))
    assert setup.member_document("server", "alice")["roleIds"] == []
    assert setup.channel_document("server", "queue")["allowedRoleIds"] == []
    assert _granted(setup, "alice") == [VIEW_CHANNEL]

    # Deleting the default role recomputes everyone.
    setup.store.delete_document(role_path("server", "everyone"))
    assert _granted(setup, "alice") == []
    assert _granted(setup, "bob") == []
    assert _granted(setup, "olivia") == sorted(PERMISSION_KEYS)


def test_attached_default_role_pointer(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.attach("server")

    setup.create_server("server", default_role_id="support")
    assert _granted(setup, "bob") == [SEND_MESSAGES]
    assert _granted(setup, "alice") == [SEND_MESSAGES]

    # Deleting the role the pointer names falls back to the role named everyone.
    setup.store.delete_document(role_path("server", "support"))
    assert _granted(setup, "bob") == [VIEW_CHANNEL]
    assert _granted(setup, "alice") == [VIEW_CHANNEL]


def test_attached_role_loses_everyone_flag(setup):
    # type: (SetupTest) -> None
    setup.create_server("server", owner="olivia")
    setup.create_role("server", "base", "Base", {"viewChannels": True}, isEveryoneRole=True)
    setup.create_role("server", "support", "Support", {"sendMessages": True}, position=1)
    setup.add_member("server", "alice", role_ids=["support"])
    setup.add_member("server", "bob")
    cascade = setup.service_factory.create_cascade_controller()
    cascade.recompute_all("server")
    cascade.drain()
    cascade.attach("server")
    assert _granted(setup, "bob") == [VIEW_CHANNEL]

    setup.store.write_document(role_path("server", "base"), {"isEveryoneRole": False})
    assert _granted(setup, "bob") == []
    assert _granted(setup, "alice") == [SEND_MESSAGES]

    setup.store.write_document(role_path("server", "base"), {"isEveryoneRole": True})
    assert _granted(setup, "bob") == [VIEW_CHANNEL]


def test_attached_role_renamed_away_from_everyone(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    cascade = setup.service_factory.create_cascade_controller()
    cascade.recompute_all("server")
    cascade.drain()
    cascade.attach("server")

    setup.store.write_document(role_path("server", "everyone"), {"name": "Members"})
    assert _granted(setup, "bob") == []
    assert _granted(setup, "alice") == [SEND_MESSAGES]


def test_attached_default_candidate_reordered(setup):
    # type: (SetupTest) -> None
    setup.create_server("server", owner="olivia")
    setup.create_role("server", "low", "Low", {"viewChannels": True}, isEveryoneRole=True)
    setup.create_role(
        "server", "high", "High", {"sendMessages": True}, position=1, isEveryoneRole=True
    )
    setup.add_member("server", "bob")
    cascade = setup.service_factory.create_cascade_controller()
    cascade.recompute_all("server")
    cascade.drain()
    cascade.attach("server")
    assert _granted(setup, "bob") == [SEND_MESSAGES]

    # The highest flagged role is the default, so moving the other one above it switches.
    setup.store.write_document(role_path("server", "low"), {"position": 2})
    assert _granted(setup, "bob") == [VIEW_CHANNEL]
