"""
Persistence gateways for the editing session.

All reads and writes the draft engine performs against the store go through a
``FaqGateway``. Two implementations ship:

  - ``ServiceGateway``: in-process, calls the service layer directly inside an
    app context. Used by CLI tooling and tests.
  - ``HttpGateway``: talks to the REST API with ``requests``. Pass a custom
    ``session`` in tests to intercept HTTP calls.

Failures are normalized into two exception types so the reconciler can tell
"retry as-is" apart from "reload before retrying":

  - ``TransientGatewayError``: network failure, timeout, HTTP 5xx, a
    response body that is not JSON, or the database being unavailable.
  - ``BatchRejectedError``: the server refused the request (HTTP 4xx, or a
    service-level NotFoundError / ValidationError / ConflictError, or any
    other database error).
"""

from __future__ import annotations

import abc
import contextlib
import logging
from typing import Any

import requests
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from kb_editor.drafts.records import FaqRecord, FaqUpsert, PhaseGroupRecord, SectionRecord

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30


class GatewayError(Exception):
    """Base class for persistence failures seen by the editing session."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransientGatewayError(GatewayError):
    """Safe to retry verbatim."""


class BatchRejectedError(GatewayError):
    """The server refused the request; the local base is probably stale."""


class FaqGateway(abc.ABC):
    """Boundary contract between the editing session and persistence."""

    @abc.abstractmethod
    def list_sections(self) -> list[SectionRecord]: ...

    @abc.abstractmethod
    def list_phase_groups(self) -> list[PhaseGroupRecord]: ...

    @abc.abstractmethod
    def list_faqs(self) -> list[FaqRecord]: ...

    @abc.abstractmethod
    def apply_faq_batch(self, upserts: list[FaqUpsert], deletes: list[str]) -> dict:
        """Atomically upsert and delete FAQ rows; returns ``{upserted, deleted}``."""

    @abc.abstractmethod
    def delete_section(self, section_id: str) -> None: ...

    @abc.abstractmethod
    def delete_phase_group(self, group_id: str) -> None: ...

    @abc.abstractmethod
    def add_section_to_group(self, section_id: str, group_id: str) -> SectionRecord: ...

    @abc.abstractmethod
    def remove_section_from_group(self, section_id: str) -> SectionRecord: ...

    @abc.abstractmethod
    def get_custom_rules(self) -> str: ...

    @abc.abstractmethod
    def save_custom_rules(self, content: str) -> None: ...


# ═══════════════════════════════════════════════════════════════
# In-process gateway
# ═══════════════════════════════════════════════════════════════
class ServiceGateway(FaqGateway):
    """Gateway over the service layer for one organization.

    Args:
        org_id: Organization scope for every call.
        user_id: Author recorded on custom-rules history rows.
        app: Optional Flask app; when given, each call runs in its app context.
    """

    def __init__(self, org_id: int, user_id: int | None = None, app=None) -> None:
        self.org_id = org_id
        self.user_id = user_id
        self._app = app

    @contextlib.contextmanager
    def _call(self, operation: str):
        from kb_editor.core.exceptions import ConflictError, NotFoundError, ValidationError

        ctx = self._app.app_context() if self._app is not None else contextlib.nullcontext()
        with ctx:
            try:
                yield
            except (NotFoundError, ValidationError, ConflictError) as exc:
                raise BatchRejectedError(f"{operation}: {exc}") from exc
            except OperationalError as exc:
                raise TransientGatewayError(f"{operation}: database unavailable") from exc
            except SQLAlchemyError as exc:
                logger.warning("Gateway %s database error: %s", operation, exc)
                raise BatchRejectedError(f"{operation}: database error") from exc

    def list_sections(self) -> list[SectionRecord]:
        from kb_editor.services import section_service

        with self._call("list_sections"):
            return [SectionRecord.from_dict(s) for s in section_service.list_sections(self.org_id)]

    def list_phase_groups(self) -> list[PhaseGroupRecord]:
        from kb_editor.services import section_service

        with self._call("list_phase_groups"):
            return [PhaseGroupRecord.from_dict(g) for g in section_service.list_phase_groups(self.org_id)]

    def list_faqs(self) -> list[FaqRecord]:
        from kb_editor.services import faq_service

        with self._call("list_faqs"):
            return [FaqRecord.from_dict(f) for f in faq_service.list_faqs(self.org_id)]

    def apply_faq_batch(self, upserts: list[FaqUpsert], deletes: list[str]) -> dict:
        from kb_editor.services import faq_service

        with self._call("apply_faq_batch"):
            return faq_service.apply_faq_batch(self.org_id, upserts, deletes)

    def delete_section(self, section_id: str) -> None:
        from kb_editor.services import section_service

        with self._call("delete_section"):
            section_service.delete_section(self.org_id, section_id)

    def delete_phase_group(self, group_id: str) -> None:
        from kb_editor.services import section_service

        with self._call("delete_phase_group"):
            section_service.delete_phase_group(self.org_id, group_id)

    def add_section_to_group(self, section_id: str, group_id: str) -> SectionRecord:
        from kb_editor.services import section_service

        with self._call("add_section_to_group"):
            return SectionRecord.from_dict(
                section_service.add_section_to_group(self.org_id, section_id, group_id)
            )

    def remove_section_from_group(self, section_id: str) -> SectionRecord:
        from kb_editor.services import section_service

        with self._call("remove_section_from_group"):
            return SectionRecord.from_dict(
                section_service.remove_section_from_group(self.org_id, section_id)
            )

    def get_custom_rules(self) -> str:
        from kb_editor.services import custom_rules_service

        with self._call("get_custom_rules"):
            rules = custom_rules_service.get_custom_rules(self.org_id)
            return rules["content"] if rules else ""

    def save_custom_rules(self, content: str) -> None:
        from kb_editor.services import custom_rules_service

        with self._call("save_custom_rules"):
            custom_rules_service.save_custom_rules(self.org_id, content, user_id=self.user_id)


# ═══════════════════════════════════════════════════════════════
# HTTP gateway
# ═══════════════════════════════════════════════════════════════
class HttpGateway(FaqGateway):
    """Gateway over the ``/api/v1/orgs/<slug>`` REST API.

    Usage:
        gateway = HttpGateway("https://kb.example.com", "acme", api_key="...")
        session = EditingSession(gateway)
    """

    def __init__(
        self,
        base_url: str,
        org_slug: str,
        api_key: str | None = None,
        session: requests.Session | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.org_slug = org_slug
        self.api_key = api_key
        self.timeout = timeout
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/v1/orgs/{self.org_slug}{path}"

    def _request(self, method: str, path: str, payload: Any = None, params: dict | None = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key

        try:
            resp = self.session.request(
                method,
                self._url(path),
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Gateway %s %s failed: %s", method, path, exc)
            raise TransientGatewayError(f"{method} {path}: {exc}") from exc

        if resp.status_code >= 500:
            raise TransientGatewayError(
                f"{method} {path}: HTTP {resp.status_code}", status_code=resp.status_code
            )
        if resp.status_code >= 400:
            raise BatchRejectedError(
                f"{method} {path}: HTTP {resp.status_code} {_error_text(resp)}",
                status_code=resp.status_code,
            )
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            logger.warning("Gateway %s %s returned a non-JSON body", method, path)
            raise TransientGatewayError(
                f"{method} {path}: invalid JSON response", status_code=resp.status_code
            ) from exc

    def list_sections(self) -> list[SectionRecord]:
        return [SectionRecord.from_dict(s) for s in self._request("GET", "/sections") or []]

    def list_phase_groups(self) -> list[PhaseGroupRecord]:
        return [PhaseGroupRecord.from_dict(g) for g in self._request("GET", "/phase-groups") or []]

    def list_faqs(self) -> list[FaqRecord]:
        return [FaqRecord.from_dict(f) for f in self._request("GET", "/faqs") or []]

    def apply_faq_batch(self, upserts: list[FaqUpsert], deletes: list[str]) -> dict:
        payload = {
            "upserts": [u.to_payload() for u in upserts],
            "deletes": list(deletes),
        }
        return self._request("POST", "/faqs/batch", payload) or {"upserted": 0, "deleted": 0}

    def delete_section(self, section_id: str) -> None:
        self._request("DELETE", f"/sections/{section_id}")

    def delete_phase_group(self, group_id: str) -> None:
        self._request("DELETE", f"/phase-groups/{group_id}")

    def add_section_to_group(self, section_id: str, group_id: str) -> SectionRecord:
        data = self._request("POST", f"/phase-groups/{group_id}/sections", {"sectionId": section_id})
        return SectionRecord.from_dict(data)

    def remove_section_from_group(self, section_id: str) -> SectionRecord:
        data = self._request("DELETE", f"/phase-groups/sections/{section_id}")
        return SectionRecord.from_dict(data)

    def get_custom_rules(self) -> str:
        data = self._request("GET", "/custom-rules") or {}
        return data.get("content") or ""

    def save_custom_rules(self, content: str) -> None:
        self._request("PUT", "/custom-rules", {"content": content})


def _error_text(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or "")
    return ""
