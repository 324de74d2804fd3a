"""Tests for SDK and member initialization."""

import re
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture

from cafsample.bootstrap import (
    MemberLoginError,
    build_application,
    create_member,
    initialize_member,
    initialize_sdk,
    load_member,
    load_profile_picture,
)
from cafsample.config import CafSampleSettings, MemberConfig
from cafsample.keystore import FileSystemKeyStore
from cafsample.sdk.errors import MemberNotFoundError, TokenSdkError
from cafsample.sdk.local import LocalTokenService
from cafsample.sdk.types import Alias, AliasType, Profile

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestInitializeSdk:
    """The keys directory is created and the backend resolved."""

    def test_creates_keys_dir(self, tmp_path: Path) -> None:
        settings = CafSampleSettings()
        client, keystore = initialize_sdk(settings)

        assert (tmp_path / "keys").is_dir()
        assert keystore.root == Path("keys")
        assert isinstance(client, LocalTokenService)

    def test_local_backend_uses_sandbox_settings(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CAFSAMPLE_SANDBOX__AVAILABLE_BALANCE", "5")
        client, _ = initialize_sdk(CafSampleSettings())
        assert isinstance(client, LocalTokenService)
        assert str(client.available_balance) == "5"

    def test_import_path_backend(self, mocker: MockerFixture) -> None:
        factory = mocker.MagicMock(return_value="vendor-client")
        module = mocker.MagicMock(build=factory)
        mocker.patch("cafsample.sdk.loader.importlib.import_module", return_value=module)

        settings = CafSampleSettings(token={"backend": "vendor.sdk:build"})
        client, keystore = initialize_sdk(settings)

        assert client == "vendor-client"
        factory.assert_called_once_with(settings=settings.token, keystore=keystore)

    def test_unimportable_backend(self) -> None:
        settings = CafSampleSettings(token={"backend": "cafsample_missing_mod:build"})
        with pytest.raises(ValueError, match="Cannot load token backend"):
            initialize_sdk(settings)

    def test_backend_not_callable(self) -> None:
        settings = CafSampleSettings(token={"backend": "cafsample:__version__"})
        with pytest.raises(ValueError, match="not callable"):
            initialize_sdk(settings)


class TestInitializeMember:
    """Existing members are logged in, otherwise a new one is created."""

    def test_creates_member_when_no_keys(
        self, sandbox: LocalTokenService, keystore: FileSystemKeyStore
    ) -> None:
        member = initialize_member(sandbox, keystore, MemberConfig())
        assert keystore.member_ids() == [member.member_id]

    def test_logs_in_saved_member(
        self, sandbox: LocalTokenService, keystore: FileSystemKeyStore
    ) -> None:
        first = initialize_member(sandbox, keystore, MemberConfig())
        second = initialize_member(LocalTokenService(keystore), keystore, MemberConfig())
        assert second.member_id == first.member_id

    def test_saved_member_unknown_to_service(
        self, sandbox: LocalTokenService, keystore: FileSystemKeyStore
    ) -> None:
        initialize_member(sandbox, keystore, MemberConfig())
        sandbox.registry_path.unlink()

        with pytest.raises(MemberLoginError, match="Remove keys dir and try again"):
            initialize_member(sandbox, keystore, MemberConfig())

    def test_load_member_propagates_other_errors(self, mocker: MockerFixture) -> None:
        client = mocker.MagicMock()
        client.get_member.side_effect = TokenSdkError("service unavailable")
        with pytest.raises(TokenSdkError, match="service unavailable"):
            load_member(client, "m:abc:5zKtXEAq")

    def test_load_member_not_found(self, mocker: MockerFixture) -> None:
        client = mocker.MagicMock()
        client.get_member.side_effect = MemberNotFoundError("m:abc:5zKtXEAq")
        with pytest.raises(MemberLoginError) as excinfo:
            load_member(client, "m:abc:5zKtXEAq")
        assert isinstance(excinfo.value.__cause__, MemberNotFoundError)


class TestCreateMember:
    """New members get a random email alias, a profile and a picture."""

    def test_alias_profile_and_picture(self, mocker: MockerFixture) -> None:
        client = mocker.MagicMock()
        member = client.create_member.return_value

        create_member(client, MemberConfig())

        alias = client.create_member.call_args.args[0]
        assert alias.type is AliasType.EMAIL
        assert re.fullmatch(r"cafpython-[0-9a-z]{20}\+noverify@example\.com", alias.value)
        member.set_profile.assert_called_once_with(Profile(display_name_first="CBPII Demo"))
        content_type, data = member.set_profile_picture.call_args.args
        assert content_type == "image/png"
        assert data.startswith(PNG_SIGNATURE)

    def test_aliases_are_unique(self, sandbox: LocalTokenService) -> None:
        first = create_member(sandbox, MemberConfig())
        second = create_member(sandbox, MemberConfig())
        assert first.first_alias() != second.first_alias()

    def test_configured_profile_picture(self, tmp_path: Path) -> None:
        picture = tmp_path / "logo.png"
        picture.write_bytes(PNG_SIGNATURE + b"custom")
        config = MemberConfig(profile_picture=picture)
        assert load_profile_picture(config).endswith(b"custom")

    def test_bundled_profile_picture(self) -> None:
        assert load_profile_picture(MemberConfig()).startswith(PNG_SIGNATURE)


def test_build_application_mounts_sandbox() -> None:
    app = build_application(CafSampleSettings())
    with TestClient(app) as client:
        response = client.get("/sandbox/authorize/rq:x")
    assert response.status_code == 404
    assert response.text == "Token request not found: rq:x"


def test_build_application_without_local_backend(mocker: MockerFixture) -> None:
    vendor_client = mocker.MagicMock()
    vendor_client.create_member.return_value.first_alias.return_value = Alias(
        type=AliasType.EMAIL, value="cbpii@example.com"
    )
    mocker.patch("cafsample.bootstrap.load_backend", return_value=vendor_client)

    app = build_application(CafSampleSettings())
    with TestClient(app) as client:
        # Unmatched routes answer with the JSON default, not the SDK error text
        response = client.get("/sandbox/authorize/rq:x")
        script = client.get("/script.js")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}
    assert "cbpii@example.com" in script.text
