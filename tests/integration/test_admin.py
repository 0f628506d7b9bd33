"""Integration tests for admin endpoints."""

import base64

import pytest
import pytest_asyncio
from services.earnings_service.models import (
    Chapter,
    CourseOrder,
    CoursePurchase,
    OrderStatus,
    TaskDefinition,
    TransactionPurpose,
    TransactionStatus,
    Withdrawal,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from tests.factories import (
    auth_headers_for,
    make_course,
    make_profile,
    make_task,
    make_transaction,
)


@pytest_asyncio.fixture
async def admin_headers(db_session):
    admin = await make_profile(db_session, is_admin=True, is_paid=True)
    return auth_headers_for(admin.id)


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_admin_is_forbidden(client, db_session):
    user = await make_profile(db_session, is_paid=True)

    response = await client.get("/admin/stats", headers=auth_headers_for(user.id))

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


# ---------------------------------------------------------------------------
# Courses & content
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_course_lifecycle(client, db_session, admin_headers):
    created = await client.post(
        "/admin/courses",
        json={"title": "Dropshipping", "price": 750, "category": "business"},
        headers=admin_headers,
    )
    assert created.status_code == 200, created.text
    course = created.json()["course"]
    assert course["price_units"] == 75000
    assert course["is_published"] is False
    assert (await client.get("/courses")).json() == []

    published = await client.put(
        f"/admin/courses/{course['id']}/publish",
        json={"is_published": True},
        headers=admin_headers,
    )
    updated = await client.put(
        f"/admin/courses/{course['id']}", json={"price": 800}, headers=admin_headers
    )
    assert published.status_code == 200
    assert updated.status_code == 200

    catalog = (await client.get("/courses")).json()
    assert catalog[0]["priceKES"] == 800.0

    listed = (await client.get("/admin/courses", headers=admin_headers)).json()
    assert listed[0]["purchase_count"] == 0

    deleted = await client.delete(f"/admin/courses/{course['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await client.get("/courses")).json() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_lessons_crud(client, db_session, admin_headers):
    course = await make_course(db_session)

    created = await client.post(
        f"/admin/courses/{course.id}/lessons",
        json={"title": "Intro", "video_url": "https://v.test/1", "duration_minutes": 5},
        headers=admin_headers,
    )
    lesson_id = created.json()["lessonId"]
    renamed = await client.put(
        f"/admin/lessons/{lesson_id}", json={"title": "Welcome"}, headers=admin_headers
    )
    detail = (await client.get(f"/courses/{course.id}")).json()

    assert renamed.status_code == 200
    assert [lesson["title"] for lesson in detail["lessons"]] == ["Welcome"]

    removed = await client.delete(f"/admin/lessons/{lesson_id}", headers=admin_headers)
    assert removed.status_code == 200
    assert (await client.get(f"/courses/{course.id}")).json()["lessons"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chapters_are_numbered_and_reorderable(client, db_session, admin_headers):
    course = await make_course(db_session)

    ids = []
    for title in ("One", "Two"):
        response = await client.post(
            f"/admin/courses/{course.id}/chapters",
            json={"title": title, "content_html": f"<p>{title}</p>"},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        ids.append(response.json()["chapter"]["id"])

    numbers = (
        await db_session.execute(
            select(Chapter.title, Chapter.order_num)
            .where(Chapter.course_id == course.id)
            .order_by(Chapter.order_num)
        )
    ).all()
    assert numbers == [("One", 1), ("Two", 2)]

    reordered = await client.put(
        f"/admin/courses/{course.id}/chapters/reorder",
        json={"order": [{"id": ids[0], "order_num": 2}, {"id": ids[1], "order_num": 1}]},
        headers=admin_headers,
    )
    assert reordered.status_code == 200
    titles = [c["title"] for c in (await client.get(f"/courses/{course.id}/chapters")).json()]
    assert titles == ["Two", "One"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_resources_get_next_index(client, db_session, admin_headers):
    course = await make_course(db_session)

    for title in ("Canva", "Notion"):
        await client.post(
            "/admin/resources",
            json={
                "course_id": str(course.id),
                "type": "tool",
                "title": title,
                "url": f"https://{title.lower()}.test",
            },
            headers=admin_headers,
        )
    resources = (await client.get(f"/courses/{course.id}/resources")).json()

    assert [(r["title"], r["order_index"]) for r in resources] == [
        ("Canva", 0),
        ("Notion", 1),
    ]

    removed = await client.delete(
        f"/admin/resources/{resources[0]['id']}", headers=admin_headers
    )
    assert removed.status_code == 200
    assert len((await client.get(f"/courses/{course.id}/resources")).json()) == 1


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tasks_crud(client, db_session, admin_headers):
    created = await client.post(
        "/admin/tasks",
        json={"title": "Share a post", "reward_kes": 15, "daily_limit": 3},
        headers=admin_headers,
    )
    task_id = created.json()["task"]["id"]

    deactivated = await client.put(
        f"/admin/tasks/{task_id}", json={"is_active": False}, headers=admin_headers
    )
    listed = (await client.get("/admin/tasks", headers=admin_headers)).json()

    assert created.status_code == 200, created.text
    assert deactivated.status_code == 200
    assert listed[0]["is_active"] is False

    deleted = await client.delete(f"/admin/tasks/{task_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert await db_session.scalar(select(func.count(TaskDefinition.id))) == 0


# ---------------------------------------------------------------------------
# Orders & grants
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_course_order_approval_grants_access(client, db_session, admin_headers):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session)
    order = (
        await client.post(
            f"/courses/{course.id}/order",
            json={"reference": "PSK_1", "amount": 50000},
            headers=auth_headers_for(user.id),
        )
    ).json()

    orders = (await client.get("/admin/course-orders", headers=admin_headers)).json()
    assert orders[0]["email"] == user.email
    assert orders[0]["courseTitle"] == course.title

    approved = await client.post(
        f"/admin/course-orders/{order['orderId']}/action",
        json={"action": "approve"},
        headers=admin_headers,
    )
    again = await client.post(
        f"/admin/course-orders/{order['orderId']}/action",
        json={"action": "reject"},
        headers=admin_headers,
    )

    assert approved.status_code == 200, approved.text
    assert again.json()["message"] == "Order already processed"
    assert await db_session.scalar(
        select(CourseOrder.status).where(CourseOrder.user_id == user.id)
    ) == OrderStatus.APPROVED
    access = await client.get(
        f"/courses/{course.id}/access", headers=auth_headers_for(user.id)
    )
    assert access.json()["hasAccess"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_course_order_rejection(client, db_session, admin_headers):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session)
    order = (
        await client.post(
            f"/courses/{course.id}/order", json={}, headers=auth_headers_for(user.id)
        )
    ).json()

    rejected = await client.post(
        f"/admin/course-orders/{order['orderId']}/action",
        json={"action": "reject"},
        headers=admin_headers,
    )

    assert rejected.json()["message"] == "Order rejected"
    assert await db_session.scalar(
        select(func.count(CoursePurchase.id)).where(CoursePurchase.user_id == user.id)
    ) == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_manual_grant_is_idempotent(client, db_session, admin_headers):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session)
    body = {"userId": user.id, "courseId": str(course.id)}

    first = await client.post("/admin/grant-course-access", json=body, headers=admin_headers)
    second = await client.post("/admin/grant-course-access", json=body, headers=admin_headers)

    assert first.status_code == 200, first.text
    assert second.status_code == 200
    assert await db_session.scalar(
        select(func.count(CoursePurchase.id)).where(CoursePurchase.user_id == user.id)
    ) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_manual_grant_unknown_user(client, db_session, admin_headers):
    course = await make_course(db_session)

    response = await client.post(
        "/admin/grant-course-access",
        json={"userId": "ghost", "courseId": str(course.id)},
        headers=admin_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approving_order_for_owned_course_succeeds(client, db_session, admin_headers):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session)
    user_id, course_id = user.id, course.id
    order = (
        await client.post(
            f"/courses/{course_id}/order", json={}, headers=auth_headers_for(user_id)
        )
    ).json()
    granted = await client.post(
        "/admin/grant-course-access",
        json={"userId": user_id, "courseId": str(course_id)},
        headers=admin_headers,
    )

    approved = await client.post(
        f"/admin/course-orders/{order['orderId']}/action",
        json={"action": "approve"},
        headers=admin_headers,
    )

    assert granted.status_code == 200, granted.text
    assert approved.status_code == 200, approved.text
    assert approved.json()["message"] == "Order approved, course unlocked for user"
    assert await db_session.scalar(
        select(CourseOrder.status).where(CourseOrder.user_id == user_id)
    ) == OrderStatus.APPROVED
    assert await db_session.scalar(
        select(func.count(CoursePurchase.id)).where(CoursePurchase.user_id == user_id)
    ) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_rejected_during_approval_grants_nothing(
    client, db_session, session_factory, admin_headers, monkeypatch
):
    user = await make_profile(db_session, is_paid=True)
    course = await make_course(db_session)
    user_id = user.id
    order = (
        await client.post(
            f"/courses/{course.id}/order", json={}, headers=auth_headers_for(user_id)
        )
    ).json()
    original_get = AsyncSession.get

    async def _get_then_reject_elsewhere(self, entity, ident, **kwargs):
        found = await original_get(self, entity, ident, **kwargs)
        if entity is CourseOrder:
            async with session_factory() as other:
                await other.execute(
                    update(CourseOrder)
                    .where(CourseOrder.id == ident)
                    .values(status=OrderStatus.REJECTED)
                )
                await other.commit()
        return found

    monkeypatch.setattr(AsyncSession, "get", _get_then_reject_elsewhere)

    response = await client.post(
        f"/admin/course-orders/{order['orderId']}/action",
        json={"action": "approve"},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    assert response.json()["message"] == "Order already processed"
    assert await db_session.scalar(
        select(CourseOrder.status).where(CourseOrder.user_id == user_id)
    ) == OrderStatus.REJECTED
    assert await db_session.scalar(
        select(func.count(CoursePurchase.id)).where(CoursePurchase.user_id == user_id)
    ) == 0


# ---------------------------------------------------------------------------
# Overview & withdrawals
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stats_and_data(client, db_session, admin_headers):
    paid = await make_profile(db_session, is_paid=True, balance_units=20000)
    await make_profile(db_session)
    await make_course(db_session)
    await make_task(db_session)
    await make_task(db_session, is_active=False)
    await make_transaction(
        db_session, paid.id, amount_units=10000, status=TransactionStatus.SUCCESS
    )
    await make_transaction(
        db_session,
        paid.id,
        amount_units=5000,
        status=TransactionStatus.SUCCESS,
        purpose=TransactionPurpose.REFERRAL_BONUS,
    )
    await client.post(
        "/withdraw",
        json={"amount": 150, "phone": "0711111111"},
        headers=auth_headers_for(paid.id),
    )

    stats = (await client.get("/admin/stats", headers=admin_headers)).json()
    data = (await client.get("/admin/data", headers=admin_headers)).json()

    assert stats == {
        "totalUsers": 3,
        "paidUsers": 2,
        "pendingWithdrawals": 1,
        "totalCourses": 1,
        "totalTasks": 1,
        "totalRevenueKES": 100.0,
    }
    assert len(data["users"]) == 3
    assert data["withdrawals"][0]["amount"] == 150.0
    assert data["withdrawals"][0]["email"] == paid.email


@pytest.mark.asyncio
@pytest.mark.integration
async def test_withdrawal_rejection_refunds(client, db_session, admin_headers):
    user = await make_profile(db_session, balance_units=20000)
    headers = auth_headers_for(user.id)
    await client.post("/withdraw", json={"amount": 200, "phone": "0711"}, headers=headers)
    withdrawal_id = await db_session.scalar(select(Withdrawal.id))

    rejected = await client.post(
        f"/admin/withdraw/{withdrawal_id}/action",
        json={"action": "reject"},
        headers=admin_headers,
    )
    again = await client.post(
        f"/admin/withdraw/{withdrawal_id}/action",
        json={"action": "approve"},
        headers=admin_headers,
    )

    assert rejected.status_code == 200, rejected.text
    assert again.status_code == 400
    dashboard = (await client.get("/dashboard/data", headers=headers)).json()
    assert dashboard["wallet"]["balanceKES"] == 200.0


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_image_with_data_url(client, storage, admin_headers):
    encoded = base64.b64encode(b"\x89PNG fake").decode()

    response = await client.post(
        "/admin/upload-image",
        json={"imageData": f"data:image/png;base64,{encoded}", "fileName": "cover.png"},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["path"].startswith("thumbnails/")
    assert data["path"].endswith("_cover.png")
    assert data["url"].endswith(data["path"])
    assert storage.objects[data["path"]] == (b"\x89PNG fake", "image/png")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_image_plain_base64_into_folder(client, storage, admin_headers):
    encoded = base64.b64encode(b"jpeg bytes").decode()

    response = await client.post(
        "/admin/upload-image",
        json={"imageData": encoded, "fileName": "a.jpg", "folder": "courses"},
        headers=admin_headers,
    )

    path = response.json()["path"]
    assert path.startswith("courses/")
    assert storage.objects[path][1] == "image/jpeg"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_rejects_garbage(client, admin_headers):
    response = await client.post(
        "/admin/upload-image",
        json={"imageData": "not base64!!", "fileName": "a.png"},
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_path_ignores_directory_parts(client, storage, admin_headers):
    encoded = base64.b64encode(b"png bytes").decode()

    response = await client.post(
        "/admin/upload-image",
        json={
            "imageData": encoded,
            "fileName": "../../config/cover.png",
            "folder": "../courses/./",
        },
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    path = response.json()["path"]
    assert path.startswith("courses/")
    assert path.endswith("_cover.png")
    assert ".." not in path
    assert path.count("/") == 1
    assert path in storage.objects


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_rejects_name_without_file_part(client, admin_headers):
    encoded = base64.b64encode(b"png bytes").decode()

    response = await client.post(
        "/admin/upload-image",
        json={"imageData": encoded, "fileName": "images/.."},
        headers=admin_headers,
    )

    assert response.status_code == 400
