"""Tests for the dry-run and GCP Secret Manager stores."""
import base64
import io
import json
import subprocess
from unittest import mock

import pytest
import yaml
from google.api_core import exceptions as gcp_exceptions

from ci_secret_generator.secrets.domains import gcp_client
from ci_secret_generator.secrets.domains.errors import StoreError
from ci_secret_generator.secrets.domains.gcp_client import GCPSecretStore
from ci_secret_generator.secrets.domains.store import DryRunSecretStore


def _version(payload):
    """Build a fake access_secret_version response."""
    response = mock.MagicMock()
    response.payload.data = json.dumps(payload).encode("UTF-8")
    return response


def _saved_payload(client, call_index=-1):
    request = client.add_secret_version.call_args_list[call_index].kwargs["request"]
    return request["parent"], json.loads(request["payload"]["data"].decode("UTF-8"))


@pytest.fixture
def fake_client():
    client = mock.MagicMock()
    client.access_secret_version.side_effect = gcp_exceptions.NotFound("no such secret")
    return client


@pytest.fixture
def gcp_store(fake_client):
    store = GCPSecretStore("test-project")
    store._client = fake_client
    return store


class TestDryRunSecretStore:
    """Test suite for the dry-run store."""

    def test_writes_one_document_per_operation(self):
        stream = io.StringIO()
        store = DryRunSecretStore(stream)

        store.set_field("svc", "token", b"tok\n")
        store.set_attachment("svc", "cert", b"PEM")
        store.set_password("svc", b"hunter2")
        store.set_notes("svc", "notes here")

        documents = list(yaml.safe_load_all(stream.getvalue()))
        assert documents == [
            {"operation": "set_field", "item_name": "svc", "field": "token", "value": "tok\n"},
            {"operation": "set_attachment", "item_name": "svc", "attachment": "cert", "value": "PEM"},
            {"operation": "set_password", "item_name": "svc", "value": "hunter2"},
            {"operation": "set_notes", "item_name": "svc", "notes": "notes here"},
        ]

    def test_logout_closes_stream(self, tmp_path):
        """Test that logout flushes the output file."""
        output = tmp_path / "dry-run.yaml"
        store = DryRunSecretStore(open(output, "w"))

        store.set_notes("svc", "n")
        store.logout()
        store.logout()

        assert yaml.safe_load(output.read_text())["item_name"] == "svc"


class TestGCPSecretStore:
    """Test suite for GCPSecretStore with a mocked Secret Manager client."""

    def test_missing_secret_is_created(self, gcp_store, fake_client):
        """Test that the first upload to an unknown item creates its secret."""
        gcp_store.set_field("svc", "token", b"tok")

        create_request = fake_client.create_secret.call_args.kwargs["request"]
        assert create_request["parent"] == "projects/test-project"
        assert create_request["secret_id"] == "svc"

        parent, payload = _saved_payload(fake_client)
        assert parent == "projects/test-project/secrets/svc"
        assert payload["fields"] == {"token": "tok"}

    def test_existing_document_is_updated(self, gcp_store, fake_client):
        """Test that notes are added without dropping existing fields."""
        fake_client.access_secret_version.side_effect = None
        fake_client.access_secret_version.return_value = _version({
            "fields": {"old": "value"},
            "attachments": {},
            "password": "p",
            "notes": "",
        })

        gcp_store.set_notes("svc", "fresh notes")

        fake_client.create_secret.assert_not_called()
        _, payload = _saved_payload(fake_client)
        assert payload["fields"] == {"old": "value"}
        assert payload["password"] == "p"
        assert payload["notes"] == "fresh notes"

    def test_document_is_read_once_per_item(self, gcp_store, fake_client):
        """Test that consecutive updates build on each other."""
        gcp_store.set_field("svc", "a", b"1")
        gcp_store.set_attachment("svc", "cert", b"\x00\x01")
        gcp_store.set_password("svc", b"pw")

        assert fake_client.access_secret_version.call_count == 1
        assert fake_client.add_secret_version.call_count == 3
        _, payload = _saved_payload(fake_client)
        assert payload["fields"] == {"a": "1"}
        assert base64.b64decode(payload["attachments"]["cert"]) == b"\x00\x01"
        assert payload["password"] == "pw"

    def test_invalid_item_name(self, gcp_store, fake_client):
        """Test that names Secret Manager would reject fail before any API call."""
        with pytest.raises(StoreError) as exc_info:
            gcp_store.set_field("bad.name", "token", b"tok")

        assert "Invalid item name" in str(exc_info.value)
        fake_client.access_secret_version.assert_not_called()

    def test_api_error_is_wrapped(self, gcp_store, fake_client):
        fake_client.add_secret_version.side_effect = gcp_exceptions.PermissionDenied("denied")

        with pytest.raises(StoreError) as exc_info:
            gcp_store.set_password("svc", b"pw")

        assert "failed to add version" in str(exc_info.value)

    def test_read_error_is_wrapped(self, gcp_store, fake_client):
        fake_client.access_secret_version.side_effect = gcp_exceptions.PermissionDenied("denied")

        with pytest.raises(StoreError) as exc_info:
            gcp_store.set_notes("svc", "n")

        assert "failed to read secret" in str(exc_info.value)

    def test_non_json_secret_is_rejected(self, gcp_store, fake_client):
        response = mock.MagicMock()
        response.payload.data = b"plain text"
        fake_client.access_secret_version.side_effect = None
        fake_client.access_secret_version.return_value = response

        with pytest.raises(StoreError):
            gcp_store.set_notes("svc", "n")

    def test_uploaded_values_are_reported(self, fake_client):
        """Test that on_secret receives every generated value."""
        seen = []
        store = GCPSecretStore("test-project", on_secret=seen.append)
        store._client = fake_client

        store.set_field("svc", "token", b"tok")
        store.set_password("svc", b"pw")
        store.set_notes("svc", "not a secret")

        assert seen == ["tok", "pw"]

    def test_logout_closes_transport(self, gcp_store, fake_client):
        gcp_store.logout()

        fake_client.transport.close.assert_called_once()

    def test_logout_without_client(self):
        """Test that logout before any call does not create a client."""
        with mock.patch.object(gcp_client.secretmanager, "SecretManagerServiceClient") as client_cls:
            GCPSecretStore("test-project").logout()

        client_cls.assert_not_called()

    def test_client_uses_credentials_file(self):
        with mock.patch.object(gcp_client.secretmanager, "SecretManagerServiceClient") as client_cls:
            store = GCPSecretStore("test-project", credentials_path="/tmp/sa.json")
            client = store.client

        client_cls.from_service_account_file.assert_called_once_with("/tmp/sa.json")
        assert client is client_cls.from_service_account_file.return_value


class TestGetProjectId:
    """Test suite for project ID resolution."""

    def test_explicit_value_wins(self, monkeypatch):
        monkeypatch.setenv("GCP_PROJECT", "from-env")

        assert gcp_client.get_project_id("explicit") == "explicit"

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv("GCP_PROJECT", "from-env")

        assert gcp_client.get_project_id() == "from-env"

    def test_gcloud_config(self, monkeypatch):
        monkeypatch.delenv("GCP_PROJECT", raising=False)
        result = subprocess.CompletedProcess(args=[], returncode=0, stdout="from-gcloud\n")
        monkeypatch.setattr(gcp_client.subprocess, "run", lambda *a, **kw: result)

        assert gcp_client.get_project_id() == "from-gcloud"

    def test_not_found(self, monkeypatch):
        monkeypatch.delenv("GCP_PROJECT", raising=False)

        def missing_gcloud(*args, **kwargs):
            raise FileNotFoundError("gcloud")

        monkeypatch.setattr(gcp_client.subprocess, "run", missing_gcloud)

        assert gcp_client.get_project_id() is None
