import httpx
import pytest
from httpx import ASGITransport

from app.client import (
    AdminClient,
    AuthorizationFailed,
    NotFound,
    RatingPortalClient,
    TransportFailed,
    ValidationFailed,
)
from app.main import app
from app.utils.submission_guard import (
    AlreadyRatedError,
    InMemoryPreferenceStore,
    PreferenceStore,
    SubmissionGuard,
)
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD

BASE_URL = "http://test"


class ReadOnlyStore(PreferenceStore):
    def read(self):
        return []

    def write(self, module_ids):
        raise PermissionError("read-only profile")


@pytest.fixture
def guard():
    return SubmissionGuard(InMemoryPreferenceStore())


@pytest.mark.asyncio
async def test_portal_rates_each_module_once(database, module, guard):
    async with RatingPortalClient(BASE_URL, guard, transport=ASGITransport(app=app)) as portal:
        modules = await portal.list_modules()
        assert [m["id"] for m in modules] == [module["id"]]

        form = await portal.open_rating_form(module["id"])
        assert form["module_name"] == "Distributed Systems"

        rating = await portal.submit_rating(module["id"], [4, 3, 5, 2, 4], remarks="Engaging")
        assert rating["remarks"] == "Engaging"
        assert portal.is_rated(module["id"])

        with pytest.raises(AlreadyRatedError):
            await portal.open_rating_form(module["id"])
        with pytest.raises(AlreadyRatedError):
            await portal.submit_rating(module["id"], [5, 5, 5, 5, 5])

        guard.clear()
        await portal.open_rating_form(module["id"])


@pytest.mark.asyncio
async def test_failed_submission_is_not_recorded(database, module, guard):
    async with RatingPortalClient(BASE_URL, guard, transport=ASGITransport(app=app)) as portal:
        with pytest.raises(ValidationFailed):
            await portal.submit_rating(module["id"], [4, 3, 9, 2, 4])

        with pytest.raises(ValidationFailed):
            await portal.submit_rating(module["id"], [4, 3])

        with pytest.raises(NotFound):
            await portal.submit_rating(9999, [4, 4, 4, 4, 4])

    assert guard.rated_modules() == set()


@pytest.mark.asyncio
async def test_submission_succeeds_when_recording_fails(database, module):
    guard = SubmissionGuard(ReadOnlyStore())

    async with RatingPortalClient(BASE_URL, guard, transport=ASGITransport(app=app)) as portal:
        rating = await portal.submit_rating(module["id"], [3, 3, 3, 3, 3])

    assert rating["id"] is not None
    assert guard.has_rated(module["id"]) is False


@pytest.mark.asyncio
async def test_network_failure_surfaces_retry_message(guard):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with RatingPortalClient(BASE_URL, guard, transport=httpx.MockTransport(refuse)) as portal:
        with pytest.raises(TransportFailed) as exc_info:
            await portal.submit_rating(1, [4, 4, 4, 4, 4])

    assert exc_info.value.message == "Something went wrong. Please try again."
    assert guard.rated_modules() == set()


@pytest.mark.asyncio
async def test_server_error_surfaces_retry_message(guard):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "boom"}))

    async with RatingPortalClient(BASE_URL, guard, transport=transport) as portal:
        with pytest.raises(TransportFailed) as exc_info:
            await portal.list_modules()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_admin_client_flow(database, admin_user, guard):
    transport = ASGITransport(app=app)

    async with AdminClient(BASE_URL, transport=transport) as admin:
        with pytest.raises(AuthorizationFailed):
            await admin.list_modules()
        with pytest.raises(AuthorizationFailed):
            await admin.login(ADMIN_EMAIL, "wrong-password")

        await admin.login(ADMIN_EMAIL, ADMIN_PASSWORD)
        module = await admin.create_module("Dr. Ada Mensah", "Algorithms", "Graphs and dynamic programming")

        async with RatingPortalClient(BASE_URL, guard, transport=transport) as portal:
            await portal.submit_rating(module["id"], [4, 3, 5, 2, 4])

        report = await admin.get_report(module["id"])
        assert report["total_ratings"] == 1
        assert report["averages"]["overall"] == pytest.approx(3.6)

        csv_text = await admin.export_report(module["id"])
        assert "Algorithms,Dr. Ada Mensah,1" in csv_text

        closed = await admin.set_module_active(module["id"], False)
        assert closed["is_active"] is False
        assert (await admin.set_module_active(module["id"], False))["is_active"] is False

        async with RatingPortalClient(BASE_URL, SubmissionGuard(InMemoryPreferenceStore()),
                                      transport=transport) as portal:
            assert await portal.list_modules() == []
            with pytest.raises(ValidationFailed):
                await portal.submit_rating(module["id"], [5, 5, 5, 5, 5])

        report = await admin.get_report(module["id"])
        assert report["total_ratings"] == 1

        with pytest.raises(NotFound):
            await admin.set_module_active(4040, True)


@pytest.mark.asyncio
async def test_admin_client_accepts_string_module_ids(database, admin_user):
    async with AdminClient(BASE_URL, transport=ASGITransport(app=app)) as admin:
        await admin.login(ADMIN_EMAIL, ADMIN_PASSWORD)
        module = await admin.create_module("Dr. Ada Mensah", "Algorithms", "Graphs")

        closed = await admin.set_module_active(str(module["id"]), False)

    assert closed["id"] == module["id"]
    assert closed["is_active"] is False


@pytest.mark.asyncio
async def test_plain_string_error_details_are_reported(guard):
    transport = httpx.MockTransport(
        lambda request: httpx.Response(422, json={"detail": ["scores missing", {"msg": "remarks too long"}]})
    )

    async with RatingPortalClient(BASE_URL, guard, transport=transport) as portal:
        with pytest.raises(ValidationFailed) as exc_info:
            await portal.submit_rating(1, [4, 4, 4, 4, 4])

    assert exc_info.value.message == "scores missing; remarks too long"
    assert guard.rated_modules() == set()
