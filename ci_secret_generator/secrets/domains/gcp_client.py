"""GCP Secret Manager store for generated secret items."""
import base64
import json
import os
import re
import logging
import subprocess
from typing import Any, Callable, Dict, Optional
from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .errors import StoreError
from .store import SecretStore

logger = logging.getLogger(__name__)

# Secret Manager secret IDs: letters, digits, underscores, hyphens
SECRET_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{1,255}$')


def get_project_id(project_id: Optional[str] = None) -> Optional[str]:
    """
    Resolve the GCP project ID.

    Priority order:
    1. Explicit project_id argument
    2. GCP_PROJECT environment variable
    3. gcloud config get-value project

    Returns:
        Project ID string, or None if not found
    """
    if project_id:
        return project_id

    gcp_project_env = os.getenv("GCP_PROJECT")
    if gcp_project_env:
        logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
        return gcp_project_env

    try:
        result = subprocess.run(
            ["gcloud", "config", "get-value", "project"],
            capture_output=True, text=True, check=True
        )
        project_id = result.stdout.strip()
        if project_id:
            logger.debug(f"Using project from gcloud config: {project_id}")
            return project_id
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning(f"Failed to auto-detect project_id: {e}")

    return None


def _empty_payload() -> Dict[str, Any]:
    return {"fields": {}, "attachments": {}, "password": "", "notes": ""}


class GCPSecretStore(SecretStore):
    """
    One Secret Manager secret per item.

    The latest version of the secret holds a JSON document with the item's
    fields, attachments (base64), password and notes. Every update adds a new
    version with the full document.
    """

    def __init__(
        self,
        project_id: str,
        credentials_path: Optional[str] = None,
        on_secret: Optional[Callable[[str], None]] = None,
    ):
        self.project_id = project_id
        self.credentials_path = credentials_path
        self._on_secret = on_secret
        self._client = None
        self._payloads: Dict[str, Dict[str, Any]] = {}

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            if self.credentials_path:
                self._client = secretmanager.SecretManagerServiceClient.from_service_account_file(
                    self.credentials_path
                )
            else:
                self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def _secret_path(self, item_name: str) -> str:
        if not SECRET_ID_PATTERN.match(item_name):
            raise StoreError(
                f"Invalid item name '{item_name}': Secret Manager allows only "
                f"letters, numbers, underscores (_) and hyphens (-)"
            )
        return f"projects/{self.project_id}/secrets/{item_name}"

    def _load(self, item_name: str) -> Dict[str, Any]:
        """Return the current document for the item, creating the secret if missing."""
        if item_name in self._payloads:
            return self._payloads[item_name]

        secret_path = self._secret_path(item_name)
        try:
            response = self.client.access_secret_version(
                request={"name": f"{secret_path}/versions/latest"}
            )
            payload = json.loads(response.payload.data.decode("UTF-8"))
        except gcp_exceptions.NotFound:
            logger.info(f"Creating secret {item_name} in project {self.project_id}")
            payload = _empty_payload()
            try:
                self.client.create_secret(request={
                    "parent": f"projects/{self.project_id}",
                    "secret_id": item_name,
                    "secret": {"replication": {"automatic": {}}},
                })
            except gcp_exceptions.AlreadyExists:
                # Secret exists without versions
                pass
            except gcp_exceptions.GoogleAPICallError as e:
                raise StoreError(f"failed to create secret {item_name}: {e}") from e
        except gcp_exceptions.GoogleAPICallError as e:
            raise StoreError(f"failed to read secret {item_name}: {e}") from e
        except ValueError as e:
            raise StoreError(f"secret {item_name} does not hold a JSON item document: {e}") from e

        if not isinstance(payload, dict):
            raise StoreError(f"secret {item_name} does not hold a JSON item document")
        for key, default in _empty_payload().items():
            payload.setdefault(key, default)
        self._payloads[item_name] = payload
        return payload

    def _save(self, item_name: str, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, sort_keys=True).encode("UTF-8")
        try:
            self.client.add_secret_version(request={
                "parent": self._secret_path(item_name),
                "payload": {"data": data},
            })
        except gcp_exceptions.GoogleAPICallError as e:
            # Drop the cached document so the next update re-reads the stored one
            self._payloads.pop(item_name, None)
            raise StoreError(f"failed to add version to secret {item_name}: {e}") from e

    def _register(self, value: str) -> None:
        if self._on_secret:
            self._on_secret(value)

    def set_field(self, item_name: str, field_name: str, value: bytes) -> None:
        text = value.decode("UTF-8", errors="replace")
        self._register(text)
        payload = self._load(item_name)
        payload["fields"][field_name] = text
        self._save(item_name, payload)

    def set_attachment(self, item_name: str, attachment_name: str, value: bytes) -> None:
        self._register(value.decode("UTF-8", errors="replace"))
        payload = self._load(item_name)
        payload["attachments"][attachment_name] = base64.b64encode(value).decode("ascii")
        self._save(item_name, payload)

    def set_password(self, item_name: str, value: bytes) -> None:
        text = value.decode("UTF-8", errors="replace")
        self._register(text)
        payload = self._load(item_name)
        payload["password"] = text
        self._save(item_name, payload)

    def set_notes(self, item_name: str, notes: str) -> None:
        payload = self._load(item_name)
        payload["notes"] = notes
        self._save(item_name, payload)

    def logout(self) -> None:
        if self._client is not None:
            self._client.transport.close()
            self._client = None
        self._payloads.clear()
