from random import Random
from typing import TYPE_CHECKING

import pytest
from mock import patch

from accord.constants import (
    MANAGE_ROLES,
    MANAGE_SERVER,
    PERMISSION_KEYS,
    SEND_MESSAGES,
    VIEW_CHANNEL,
)
from accord.entities.channel import ChannelNotFoundException
from accord.entities.member import MemberNotFoundException
from accord.entities.server import ServerNotFoundException
from accord.exc import StoreError
from accord.permissions import decode_permissions, encode_permissions

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentWrite
    from tests.setup import SetupTest
    from typing import Dict, List, Set


def _support_server(setup):
    # type: (SetupTest) -> None
    setup.create_server("server", owner="olivia")
    setup.create_role(
        "server", "everyone", "@everyone", permissions={"viewChannels": True}, isEveryoneRole=True
    )
    setup.create_role("server", "support", "Support", {"sendMessages": True}, position=1)
    setup.create_role("server", "mods", "Moderators", {"manageRoles": True}, position=2)
    setup.add_member("server", "olivia", role="owner")
    setup.add_member("server", "alice", role_ids=["support"])
    setup.add_member("server", "bob")
    setup.add_member("server", "carol", role="admin")


def test_effective_permissions(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()

    alice = service.effective_permissions_for("server", "alice")
    assert sorted(alice.granted()) == sorted([SEND_MESSAGES, VIEW_CHANNEL])
    assert alice.bits == encode_permissions(alice.permissions)

    bob = service.effective_permissions_for("server", "bob")
    assert sorted(bob.granted()) == [VIEW_CHANNEL]

    carol = service.effective_permissions_for("server", "carol")
    assert sorted(carol.granted()) == sorted([MANAGE_SERVER, VIEW_CHANNEL])

    olivia = service.effective_permissions_for("server", "olivia")
    assert olivia.is_owner
    assert olivia.permissions == {key: True for key in PERMISSION_KEYS}

    with pytest.raises(MemberNotFoundException):
        service.effective_permissions_for("server", "nobody")


def test_member_has_permission(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()
    assert service.member_has_permission("server", "alice", "sendMessages")
    assert service.member_has_permission("server", "alice", SEND_MESSAGES)
    assert not service.member_has_permission("server", "alice", MANAGE_ROLES)
    assert service.member_has_permission("server", "carol", MANAGE_SERVER)
    assert not service.member_has_permission("server", "nobody", VIEW_CHANNEL)
    assert not service.member_has_permission("other-server", "alice", VIEW_CHANNEL)


def test_channel_permissions(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    setup.create_channel(
        "server",
        "support-queue",
        isPrivate=True,
        allowedRoleIds=["support"],
        permissionOverrides={"roles": {"support": {"allow": {"MANAGE_MESSAGES": True}}}},
    )
    service = setup.service_factory.create_permission_service()

    assert service.can_view_channel("server", "alice", "support-queue")
    assert not service.can_view_channel("server", "bob", "support-queue")
    assert service.can_view_channel("server", "olivia", "support-queue")
    assert service.can_view_channel("server", "carol", "support-queue")

    alice = service.channel_permissions_for("server", "alice", "support-queue")
    assert alice.has("MANAGE_MESSAGES")
    bob = service.channel_permissions_for("server", "bob", "support-queue")
    assert not bob.has("MANAGE_MESSAGES")

    with pytest.raises(ChannelNotFoundException):
        service.can_view_channel("server", "alice", "nonexistent")


def test_members_affected_by_role(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()
    assert service.members_affected_by_role("server", "support") == {"alice"}
    assert service.members_affected_by_role("server", "mods") == set()

    # Changing the default role affects every member except the owner.
    assert service.members_affected_by_role("server", "everyone") == {"alice", "bob", "carol"}
    assert service.all_members("server") == {"olivia", "alice", "bob", "carol"}


def test_recompute_for_member(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()

    effective = service.recompute_for_member("server", "alice")
    member = setup.member_document("server", "alice")
    assert member["perms"] == effective.permissions
    assert member["permissionBits"] == effective.bits
    assert decode_permissions(member["permissionBits"]) == member["perms"]

    # Nothing is written when the cache is already current.
    with patch.object(setup.store, "batch_write") as batch_write:
        service.recompute_for_member("server", "alice")
    assert batch_write.call_count == 0

    with pytest.raises(MemberNotFoundException):
        service.recompute_for_member("server", "nobody")


def test_recompute_for_member_store_error(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()
    with patch.object(setup.store, "batch_write", side_effect=StoreError("unavailable")):
        with pytest.raises(StoreError):
            service.recompute_for_member("server", "alice")
    assert "perms" not in setup.member_document("server", "alice")


def test_recompute_all(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()

    result = service.recompute_all("server")
    assert sorted(result.updated) == ["alice", "bob", "carol", "olivia"]
    assert result.unchanged == []
    assert result.failures == {}
    for uid in ("alice", "bob", "carol", "olivia"):
        member = setup.member_document("server", uid)
        assert member["perms"] == service.effective_permissions_for("server", uid).permissions

    # A second pass finds every cache current.
    result = service.recompute_all("server")
    assert result.updated == []
    assert sorted(result.unchanged) == ["alice", "bob", "carol", "olivia"]

    with pytest.raises(ServerNotFoundException):
        service.recompute_all("nonexistent")


def test_recompute_members_skips_departed(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()
    result = service.recompute_members("server", ["alice", "departed"])
    assert result.updated == ["alice"]
    assert result.failures == {}
    assert service.recompute_members("server", []).updated == []


@pytest.mark.parametrize("seed", range(5))
def test_recompute_members_with_dangling_role_ids(setup, seed):
    # type: (SetupTest, int) -> None
    _support_server(setup)
    random = Random(seed)
    candidates = ["support", "mods", "everyone", "deleted", "SUPPORT", "", "mods-old"]
    held = {}  # type: Dict[str, Set[str]]
    for index in range(30):
        uid = f"member{index}"
        role_ids = random.sample(candidates, random.randint(0, len(candidates)))
        role_ids += [f"gone{random.getrandbits(32):x}" for _ in range(random.randint(0, 5))]
        setup.add_member("server", uid, role_ids=role_ids)
        held[uid] = set(role_ids)

    service = setup.service_factory.create_permission_service()
    result = service.recompute_members("server", list(held))
    assert result.failures == {}
    assert sorted(result.updated) == sorted(held)

    for uid, role_ids in held.items():
        expected = {VIEW_CHANNEL}
        if "support" in role_ids:
            expected.add(SEND_MESSAGES)
        if "mods" in role_ids:
            expected.add(MANAGE_ROLES)
        perms = setup.member_document("server", uid)["perms"]
        assert sorted(key for key, value in perms.items() if value) == sorted(expected)


def test_recompute_members_partial_failure(setup):
    # type: (SetupTest) -> None
    setup.settings.batch_write_limit = 2
    for uid in ("a", "b", "c", "d", "e"):
        setup.add_member("server", uid)
    service = setup.service_factory.create_permission_service()

    original = setup.store.batch_write

    def flaky_batch_write(writes):
        # type: (List[DocumentWrite]) -> None
        if any(path.endswith("/c") for path, _ in writes):
            raise StoreError("backend unavailable")
        original(writes)

    with patch.object(setup.store, "batch_write", side_effect=flaky_batch_write) as batch_write:
        result = service.recompute_members("server", ["e", "d", "c", "b", "a"])

    # Members are written in sorted order in batches of two, and only the failing batch is lost.
    assert batch_write.call_count == 3
    assert result.updated == ["a", "b", "e"]
    assert result.failed_uids == ["c", "d"]
    assert result.failures["c"] == "backend unavailable"
    assert "perms" in setup.member_document("server", "a")
    assert "perms" not in setup.member_document("server", "c")


def test_membership_graph(setup):
    # type: (SetupTest) -> None
    _support_server(setup)
    service = setup.service_factory.create_permission_service()
    graph = service.membership_graph("server")
    assert graph.members_with_role("support") == {"alice"}
    assert graph.non_owner_members() == {"alice", "bob", "carol"}
