from typing import TYPE_CHECKING

from mock import ANY, call, MagicMock, patch

from accord.constants import MANAGE_ROLES, MANAGE_SERVER, SEND_MESSAGES, VIEW_CHANNEL
from accord.entities.member import BaseRole
from accord.exc import StoreError
from accord.repositories.member import DocumentMemberRepository

if TYPE_CHECKING:
    from tests.setup import SetupTest
    from typing import List


def _create_server(setup):
    # type: (SetupTest) -> None
    setup.create_server("server", owner="olivia")
    setup.create_role("server", "crown", "Owner", {}, position=9, isOwnerRole=True)
    setup.create_role("server", "everyone", "everyone", {"viewChannels": True})
    setup.create_role("server", "support", "Support", {"sendMessages": True}, position=1)
    setup.create_role("server", "mods", "Moderators", {"manageRoles": True}, position=2)
    setup.add_member("server", "olivia", role="owner")
    setup.add_member("server", "mod", role_ids=["mods"])
    setup.add_member("server", "alice", role_ids=["support"])
    setup.add_member("server", "bob")
    setup.add_member("server", "carol", role="admin")


def _granted(setup, uid):
    # type: (SetupTest, str) -> List[str]
    perms = setup.member_document("server", uid).get("perms", {})
    return sorted(key for key, value in perms.items() if value)


def test_add_and_remove_roles(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("mod", mock_ui)

    usecase.add_roles("server", "bob", ["support"])
    assert mock_ui.mock_calls == [call.modified_member_roles("server", ANY)]
    member = mock_ui.mock_calls[0][1][1]
    assert member.uid == "bob"
    assert member.role_ids == frozenset(["support"])
    assert _granted(setup, "bob") == sorted([SEND_MESSAGES, VIEW_CHANNEL])

    mock_ui.reset_mock()
    usecase.remove_roles("server", "bob", ["support"])
    assert mock_ui.mock_calls == [call.modified_member_roles("server", ANY)]
    assert _granted(setup, "bob") == [VIEW_CHANNEL]


def test_add_roles_failures(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    setup.settings.max_roles_per_member = 1
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("mod", mock_ui)
    usecase.add_roles("server", "bob", ["support", "nonexistent"])
    usecase.add_roles("server", "nobody", ["support"])
    usecase.add_roles("server", "alice", ["mods"])
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_role_not_found("server", "bob", "nonexistent"),
        call.modify_member_roles_failed_member_not_found("server", "nobody"),
        call.modify_member_roles_failed_limit_exceeded("server", "alice", 1),
    ]
    assert setup.member_document("server", "bob")["roleIds"] == []
    assert setup.member_document("server", "alice")["roleIds"] == ["support"]


def test_permission_denied(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("alice", mock_ui)
    usecase.add_roles("server", "bob", ["support"])
    usecase.remove_roles("server", "alice", ["support"])
    usecase.set_base_role("server", "bob", BaseRole.MEMBER)
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_permission_denied("server", "bob"),
        call.modify_member_roles_failed_permission_denied("server", "alice"),
        call.modify_member_roles_failed_permission_denied("server", "bob"),
    ]
    assert setup.member_document("server", "alice")["roleIds"] == ["support"]


def test_owner_role_requires_owner(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("mod", mock_ui)
    usecase.add_roles("server", "mod", ["crown"])
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_permission_denied("server", "mod")
    ]

    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("olivia", mock_ui)
    usecase.add_roles("server", "bob", ["crown"])
    assert mock_ui.mock_calls == [call.modified_member_roles("server", ANY)]
    permission_service = setup.service_factory.create_permission_service()
    assert permission_service.effective_permissions_for("server", "bob").is_owner


def test_set_base_role(setup):
    # type: (SetupTest) -> None
    _create_server(setup)

    # Only the owner may promote or demote admins.
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("mod", mock_ui)
    usecase.set_base_role("server", "bob", BaseRole.ADMIN)
    usecase.set_base_role("server", "carol", BaseRole.MEMBER)
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_permission_denied("server", "bob"),
        call.modify_member_roles_failed_permission_denied("server", "carol"),
    ]

    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("olivia", mock_ui)
    usecase.set_base_role("server", "bob", BaseRole.ADMIN)
    assert mock_ui.mock_calls == [call.modified_member_roles("server", ANY)]
    assert _granted(setup, "bob") == sorted([MANAGE_SERVER, VIEW_CHANNEL])

    usecase.set_base_role("server", "carol", BaseRole.MEMBER)
    assert _granted(setup, "carol") == [VIEW_CHANNEL]


def test_owner_base_role_is_fixed(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("olivia", mock_ui)
    usecase.set_base_role("server", "bob", BaseRole.OWNER)
    usecase.set_base_role("server", "olivia", BaseRole.MEMBER)
    usecase.set_base_role("server", "nobody", BaseRole.MEMBER)
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_permission_denied("server", "bob"),
        call.modify_member_roles_failed_permission_denied("server", "olivia"),
        call.modify_member_roles_failed_member_not_found("server", "nobody"),
    ]
    assert setup.member_document("server", "olivia")["role"] == "owner"


def test_assigning_roles_never_removes_permissions(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("olivia", mock_ui)
    permission_service = setup.service_factory.create_permission_service()

    previous = permission_service.effective_permissions_for("server", "bob").bits
    for role_id in ("support", "mods", "everyone"):
        usecase.add_roles("server", "bob", [role_id])
        current = permission_service.effective_permissions_for("server", "bob").bits
        assert current & previous == previous
        previous = current
    assert _granted(setup, "bob") == sorted([MANAGE_ROLES, SEND_MESSAGES, VIEW_CHANNEL])


def test_modify_member_roles_store_error(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("mod", mock_ui)
    with patch.object(setup.store, "write_document", side_effect=StoreError("unavailable")):
        usecase.add_roles("server", "bob", ["support"])
        usecase.remove_roles("server", "alice", ["support"])
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_store_error("server", "bob", "unavailable"),
        call.modify_member_roles_failed_store_error("server", "alice", "unavailable"),
    ]
    assert setup.member_document("server", "bob")["roleIds"] == []

    mock_ui.reset_mock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("olivia", mock_ui)
    with patch.object(setup.store, "write_document", side_effect=StoreError("unavailable")):
        usecase.set_base_role("server", "carol", BaseRole.MEMBER)
    assert mock_ui.mock_calls == [
        call.modify_member_roles_failed_store_error("server", "carol", "unavailable")
    ]
    assert setup.member_document("server", "carol")["role"] == "admin"


def test_modify_member_roles_recompute_read_failure(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_modify_member_roles_usecase("mod", mock_ui)
    with patch.object(
        DocumentMemberRepository, "list_members", side_effect=StoreError("unavailable")
    ):
        usecase.add_roles("server", "bob", ["support"])
    assert mock_ui.mock_calls == [
        call.modified_member_roles_with_warnings("server", ANY, ["bob"])
    ]

    # The assignment is kept and the cache is repaired by the next recompute.
    assert setup.member_document("server", "bob")["roleIds"] == ["support"]
    cascade = setup.service_factory.create_cascade_controller()
    cascade.member_changed("server", "bob")
    cascade.drain()
    assert _granted(setup, "bob") == sorted([SEND_MESSAGES, VIEW_CHANNEL])
