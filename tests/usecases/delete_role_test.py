from random import Random
from typing import TYPE_CHECKING

from mock import call, MagicMock, patch

from accord.constants import SEND_MESSAGES, VIEW_CHANNEL
from accord.exc import StoreError
from accord.repositories.paths import member_path

if TYPE_CHECKING:
    from accord.repositories.interfaces import DocumentWrite
    from tests.setup import SetupTest
    from typing import List


def _create_server(setup):
    # type: (SetupTest) -> None
    setup.create_server("server", owner="olivia")
    setup.create_role("server", "crown", "Owner", {}, position=9, isOwnerRole=True)
    setup.create_role("server", "everyone", "everyone", {"viewChannels": True})
    setup.create_role("server", "support", "Support", {"sendMessages": True}, position=1)
    setup.create_role("server", "helpers", "Helpers", {"sendMessages": True}, position=2)
    setup.create_role("server", "mods", "Moderators", {"manageRoles": True}, position=3)
    setup.add_member("server", "olivia", role="owner", role_ids=["crown"])
    setup.add_member("server", "mod", role_ids=["mods"])
    setup.add_member("server", "alice", role_ids=["support"])
    setup.add_member("server", "bob", role_ids=["support", "helpers"])
    setup.create_channel("server", "queue", isPrivate=True, allowedRoleIds=["support", "mods"])


def _granted(setup, uid):
    # type: (SetupTest, str) -> List[str]
    perms = setup.member_document("server", uid).get("perms", {})
    return sorted(key for key, value in perms.items() if value)


def test_delete_role(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("mod", mock_ui)
    usecase.delete_role("server", "support")
    assert mock_ui.mock_calls == [call.deleted_role("server", "support")]

    assert setup.role_document("server", "support") is None
    assert setup.member_document("server", "alice")["roleIds"] == []
    assert setup.member_document("server", "bob")["roleIds"] == ["helpers"]
    assert setup.channel_document("server", "queue")["allowedRoleIds"] == ["mods"]

    # Former holders are recomputed and nobody else is touched.
    assert _granted(setup, "alice") == [VIEW_CHANNEL]
    assert _granted(setup, "bob") == sorted([SEND_MESSAGES, VIEW_CHANNEL])
    assert "perms" not in setup.member_document("server", "mod")


def test_delete_default_role(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("olivia", mock_ui)
    usecase.delete_role("server", "everyone")
    assert mock_ui.mock_calls == [call.deleted_role("server", "everyone")]
    assert _granted(setup, "alice") == [SEND_MESSAGES]
    assert _granted(setup, "mod") == ["MANAGE_ROLES"]


def test_delete_role_with_dangling_references(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    random = Random(4242)
    candidates = ["support", "helpers", "deleted-long-ago", "typo", ""]
    for index in range(40):
        role_ids = random.sample(candidates, random.randint(0, len(candidates)))
        setup.store.write_document(
            member_path("server", f"member{index}"), {"role": "member", "roleIds": role_ids}
        )

    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("olivia", mock_ui)
    usecase.delete_role("server", "support")
    assert mock_ui.mock_calls == [call.deleted_role("server", "support")]

    permission_service = setup.service_factory.create_permission_service()
    for uid, data in setup.store.list_documents("servers/server/members").items():
        assert "support" not in data["roleIds"]
        effective = permission_service.effective_permissions_for("server", uid)
        if "perms" in data:
            assert data["perms"] == effective.permissions
        if uid.startswith("member"):
            if "helpers" in data["roleIds"]:
                expected = [SEND_MESSAGES, VIEW_CHANNEL]
            else:
                expected = [VIEW_CHANNEL]
            assert sorted(effective.granted()) == expected


def test_delete_role_failures(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("alice", mock_ui)
    usecase.delete_role("server", "helpers")
    assert mock_ui.mock_calls == [call.delete_role_failed_permission_denied("server", "helpers")]

    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("mod", mock_ui)
    usecase.delete_role("server", "nonexistent")
    usecase.delete_role("server", "crown")
    assert mock_ui.mock_calls == [
        call.delete_role_failed_not_found("server", "nonexistent"),
        call.delete_role_failed_owner_role("server", "crown"),
    ]
    assert setup.role_document("server", "crown") is not None


def test_delete_role_store_error(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("mod", mock_ui)
    with patch.object(setup.store, "batch_write", side_effect=StoreError("unavailable")):
        usecase.delete_role("server", "support")
    assert mock_ui.mock_calls == [
        call.delete_role_failed_store_error("server", "support", "unavailable")
    ]
    assert setup.role_document("server", "support") is not None


def test_delete_role_with_warnings(setup):
    # type: (SetupTest) -> None
    _create_server(setup)
    original = setup.store.batch_write

    def fail_cache_writes(writes):
        # type: (List[DocumentWrite]) -> None
        if any("perms" in update for _, update in writes):
            raise StoreError("unavailable")
        original(writes)

    mock_ui = MagicMock()
    usecase = setup.usecase_factory.create_delete_role_usecase("mod", mock_ui)
    with patch.object(setup.store, "batch_write", side_effect=fail_cache_writes):
        usecase.delete_role("server", "support")
    assert mock_ui.mock_calls == [
        call.deleted_role_with_warnings("server", "support", ["alice", "bob"])
    ]
    assert setup.role_document("server", "support") is None
    assert setup.member_document("server", "alice")["roleIds"] == []
