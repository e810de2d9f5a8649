# src/tasker_client/api/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ..errors import BackendError, GrantError, LifecycleConflict, SubmissionCreateError
from ..tasks.task_models import Submission, TaskSnapshot, parse_timestamp
from ..uploads.upload_models import PendingFile, UploadContext, UploadGrant, UploadPurpose

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Pull a human message out of an error body ({"message"} or {"error"}), else the reason phrase."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return f"HTTP {resp.status_code} {resp.reason_phrase}".strip()


def _json_dict(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise BackendError("Backend returned a non-JSON body", status_code=resp.status_code) from e
    if not isinstance(data, dict):
        raise BackendError("Backend returned an unexpected JSON shape", status_code=resp.status_code)
    return data


class BackendClient:
    """
    Async client for the marketplace backend.

    Owns one httpx.AsyncClient with the bearer token attached.
    Error mapping:
    - upload-url failures          -> GrantError
    - submission creation failures -> SubmissionCreateError
    - 4xx on a task transition     -> LifecycleConflict (snapshot moved / not allowed)
    - anything else                -> BackendError
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_token: str | None = None,
        timeout_seconds: float = 10.0,
        grant_ttl_seconds: float = 900.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._grant_ttl = float(grant_ttl_seconds)
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, *, transport: httpx.AsyncBaseTransport | None = None) -> BackendClient:
        return cls(
            settings.backend_url,
            auth_token=settings.auth_token,
            timeout_seconds=settings.request_timeout_seconds,
            grant_ttl_seconds=settings.grant_ttl_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---- low-level helpers ----

    async def _request(
        self,
        method: str,
        url: str,
        *,
        error_cls: type[BackendError] = BackendError,
        conflict_on_4xx: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Backend %s %s failed: %s", method, url, e.__class__.__name__)
            raise error_cls(f"Network error calling {method} {url}: {e}") from e

        if resp.is_success:
            return resp

        message = _error_message(resp)
        logger.info("Backend %s %s -> %s (%s)", method, url, resp.status_code, message)
        if conflict_on_4xx and 400 <= resp.status_code < 500:
            raise LifecycleConflict(message, status_code=resp.status_code)
        raise error_cls(message, status_code=resp.status_code)

    # ---- uploads ----

    async def request_upload_grant(self, context: UploadContext, file: PendingFile) -> UploadGrant:
        if context.purpose == UploadPurpose.DISPUTE_EVIDENCE:
            url = "/disputes/evidence-url"
            payload: dict[str, Any] = {"filename": file.name, "contentType": file.mime_type}
        else:
            url = "/submissions/upload-url"
            payload = {"taskId": context.task_id, "filename": file.name, "contentType": file.mime_type}

        resp = await self._request("POST", url, json=payload, error_cls=GrantError)
        try:
            data = resp.json()
        except ValueError as e:
            raise GrantError("Upload grant response is not JSON", status_code=resp.status_code) from e

        destination = data.get("uploadURL") if isinstance(data, dict) else None
        if not destination:
            raise GrantError("Upload grant response has no uploadURL", status_code=resp.status_code)

        public_url = data.get("publicUrl")
        file_key = data.get("fileKey") or public_url
        if not file_key:
            raise GrantError("Upload grant response has no fileKey", status_code=resp.status_code)

        expires = parse_timestamp(data.get("expiresAt"))
        expires_at = expires.timestamp() if expires is not None else time.time() + self._grant_ttl

        return UploadGrant(
            file_key=str(file_key),
            destination=str(destination),
            expires_at=expires_at,
            public_url=str(public_url) if public_url else None,
        )

    # ---- snapshots ----

    async def get_task_snapshot(self, task_id: str) -> TaskSnapshot:
        resp = await self._request("GET", f"/tasks/{task_id}")
        return TaskSnapshot.from_api(_json_dict(resp))

    # ---- tasker transitions ----

    async def apply_to_task(self, task_id: str) -> None:
        await self._request("POST", f"/tasks/{task_id}/apply", conflict_on_4xx=True)

    async def bid_on_task(self, task_id: str, *, amount: str, timeline: str, message: str = "") -> None:
        await self._request(
            "POST",
            f"/tasks/{task_id}/bids",
            json={"amount": amount, "timeline": timeline, "message": message},
            conflict_on_4xx=True,
        )

    async def accept_assignment(self, task_id: str) -> None:
        await self._request("PUT", f"/tasks/{task_id}/assignment/accept", conflict_on_4xx=True)

    async def reject_assignment(self, task_id: str) -> None:
        await self._request("PUT", f"/tasks/{task_id}/assignment/reject", conflict_on_4xx=True)

    async def mark_done(self, task_id: str) -> None:
        await self._request("PUT", f"/tasks/{task_id}/mark-done", conflict_on_4xx=True)

    # ---- submissions ----

    async def create_submission(self, task_id: str, *, message: str, file_keys: list[str]) -> Submission:
        resp = await self._request(
            "POST",
            f"/tasks/{task_id}/submissions",
            json={"message": message, "fileKeys": [{"fileKey": k} for k in file_keys]},
            error_cls=SubmissionCreateError,
        )
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            raw = data.get("submission") if isinstance(data.get("submission"), dict) else data
            sub = Submission.from_api(raw)
            if sub.id:
                return sub
        # Some deployments answer 201 with an empty body; build the record from what we sent.
        return Submission.from_api(
            {"taskId": task_id, "message": message, "files": [{"fileKey": k} for k in file_keys]}
        )

    async def list_submissions(self, task_id: str) -> list[Submission]:
        resp = await self._request("GET", f"/tasks/{task_id}/submissions")
        try:
            data = resp.json()
        except ValueError as e:
            raise BackendError("Backend returned a non-JSON body", status_code=resp.status_code) from e
        items = data.get("submissions", []) if isinstance(data, dict) else data
        return [Submission.from_api(s) for s in items or [] if isinstance(s, dict)]

    async def delete_submission(self, submission_id: str) -> None:
        await self._request("DELETE", f"/submissions/{submission_id}", conflict_on_4xx=True)

    async def review_submission(self, submission_id: str, *, status: str, feedback: str) -> None:
        await self._request(
            "PUT",
            f"/submissions/{submission_id}/review",
            json={"status": status, "feedback": feedback},
            conflict_on_4xx=True,
        )

    async def get_preview_url(self, submission_id: str, *, file_key: str, status: str) -> str:
        resp = await self._request(
            "GET",
            f"/submissions/{submission_id}/preview-url",
            params={"fileKey": file_key, "status": status},
        )
        data = _json_dict(resp)
        url = data.get("previewURL") or data.get("previewUrl")
        if not url:
            raise BackendError("Preview response has no previewURL", status_code=resp.status_code)
        return str(url)

    # ---- disputes ----

    async def create_dispute(
        self,
        task_id: str,
        *,
        reason: str,
        details: str = "",
        evidence_url: str | None = None,
    ) -> dict[str, Any]:
        resp = await self._request(
            "POST",
            "/disputes",
            json={"taskId": task_id, "reason": reason, "details": details, "evidence": evidence_url},
        )
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
