"""
HTTP clients for the rating portal and for admin tooling.

``RatingPortalClient`` consults a ``SubmissionGuard`` before opening a rating
form and records the module after a successful submission. Nothing is retried;
every failure is raised to the caller.
"""
from typing import Dict, List, Optional, Sequence
import logging

import httpx

from .utils.submission_guard import SubmissionGuard
from .models.rating import CRITERIA_FIELDS

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Something went wrong. Please try again."


class RatingPortalError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailed(RatingPortalError):
    pass


class AuthorizationFailed(RatingPortalError):
    pass


class NotFound(RatingPortalError):
    pass


class TransportFailed(RatingPortalError):
    pass


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else body
    if isinstance(detail, list):
        # FastAPI request validation errors
        return "; ".join(str(item.get("msg", item) if isinstance(item, dict) else item) for item in detail)
    return str(detail)


def raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return

    status_code = response.status_code
    detail = _error_detail(response)
    if status_code in (400, 422):
        raise ValidationFailed(detail, status_code)
    if status_code in (401, 403):
        raise AuthorizationFailed(detail, status_code)
    if status_code == 404:
        raise NotFound(detail, status_code)

    logger.error(f"Server error {status_code} on {response.request.method} {response.request.url}: {detail}")
    raise TransportFailed(RETRY_MESSAGE, status_code)


class _BaseClient:
    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = 15.0):
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport,
                                         timeout=httpx.Timeout(timeout))

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise TransportFailed(RETRY_MESSAGE) from e
        raise_for_response(response)
        return response


class RatingPortalClient(_BaseClient):
    def __init__(self, base_url: str, guard: SubmissionGuard,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url, transport=transport)
        self.guard = guard

    async def list_modules(self) -> List[dict]:
        response = await self._request("GET", "/modules")
        return response.json()

    async def list_criteria(self) -> List[str]:
        response = await self._request("GET", "/criteria")
        return response.json()

    def is_rated(self, module_id) -> bool:
        return self.guard.has_rated(module_id)

    async def open_rating_form(self, module_id) -> dict:
        """Fetch the module to rate, refusing if this client already rated it."""
        self.guard.ensure_can_rate(module_id)
        response = await self._request("GET", f"/modules/{module_id}")
        return response.json()

    async def submit_rating(self, module_id, scores: Sequence[int],
                            remarks: Optional[str] = None) -> dict:
        self.guard.ensure_can_rate(module_id)

        if len(scores) != len(CRITERIA_FIELDS):
            raise ValidationFailed(f"Expected {len(CRITERIA_FIELDS)} scores, got {len(scores)}")

        payload: Dict[str, object] = {"lecturer_module_id": module_id}
        payload.update(zip(CRITERIA_FIELDS, scores))
        if remarks is not None and remarks.strip():
            payload["remarks"] = remarks.strip()

        response = await self._request("POST", "/ratings", json=payload)
        rating = response.json()

        self.guard.record_rated(module_id)
        logger.info(f"Rating submitted for module {module_id}")
        return rating


class AdminClient(_BaseClient):
    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url, transport=transport)
        self.access_token: Optional[str] = None

    def _auth_headers(self) -> Dict[str, str]:
        if not self.access_token:
            raise AuthorizationFailed("Not logged in")
        return {"Authorization": f"Bearer {self.access_token}"}

    async def login(self, email: str, password: str) -> dict:
        response = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        data = response.json()
        self.access_token = data["access_token"]
        return data

    def logout(self) -> None:
        self.access_token = None

    async def create_module(self, lecturer_name: str, module_name: str, module_description: str,
                            module_objectives: Optional[str] = None, email: Optional[str] = None) -> dict:
        payload = {
            "lecturer_name": lecturer_name,
            "module_name": module_name,
            "module_description": module_description,
            "module_objectives": module_objectives,
            "email": email,
        }
        response = await self._request("POST", "/admin/modules", json=payload, headers=self._auth_headers())
        return response.json()

    async def list_modules(self) -> List[dict]:
        response = await self._request("GET", "/admin/modules", headers=self._auth_headers())
        return response.json()

    async def set_module_active(self, module_id, active: bool) -> dict:
        modules = await self.list_modules()
        module = next((m for m in modules if str(m["id"]) == str(module_id)), None)
        if module is None:
            raise NotFound("Module not found", 404)
        if module["is_active"] == active:
            return module
        response = await self._request("POST", f"/admin/modules/{module_id}/toggle-active",
                                       headers=self._auth_headers())
        return response.json()

    async def get_report(self, module_id) -> dict:
        response = await self._request("GET", f"/admin/reports/{module_id}", headers=self._auth_headers())
        return response.json()

    async def export_report(self, module_id) -> str:
        response = await self._request("GET", f"/admin/reports/{module_id}/export",
                                       headers=self._auth_headers())
        return response.text
