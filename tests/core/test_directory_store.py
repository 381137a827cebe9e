"""员工目录、入住记录与服务请求 Store 测试"""

from datetime import timedelta

from hotelops.core.models import (
    CheckIn,
    CheckInStatus,
    Department,
    Note,
    RequestFeedback,
    Role,
    TaskStatus,
)


class TestStaffStore:
    """员工目录"""

    async def test_list_eligible_filters(self, stores, add_staff):
        await add_staff("k-1", Department.KITCHEN)
        await add_staff("k-2", Department.KITCHEN, is_active=False)
        await add_staff("k-3", Department.KITCHEN, is_approved=False)
        await add_staff("k-mgr", Department.KITCHEN, role=Role.MANAGER)
        await add_staff("m-1", Department.MAINTENANCE)

        eligible = await stores.staff_store.list_eligible(Department.KITCHEN)
        assert [s.staff_id for s in eligible] == ["k-1"]

    async def test_get_staff(self, stores, add_staff):
        await add_staff("s-1", None)
        member = await stores.staff_store.get_staff("s-1")
        assert member.department is None
        assert member.role == Role.STAFF
        assert await stores.staff_store.get_staff("missing") is None


class TestCheckInStore:
    """入住记录"""

    async def test_most_recent_active_stay(self, stores, clock):
        for idx, (status, days_ago) in enumerate(
            [
                (CheckInStatus.CHECKED_OUT, 1),
                (CheckInStatus.CHECKED_IN, 5),
                (CheckInStatus.CHECKED_IN, 2),
            ]
        ):
            await stores.check_in_store.upsert_check_in(
                CheckIn(
                    check_in_id=f"ci-{idx}",
                    guest_id="guest-1",
                    room_id=f"room-{idx}",
                    booking_id="bk-1",
                    status=status,
                    checked_in_at=clock.now() - timedelta(days=days_ago),
                )
            )

        active = await stores.check_in_store.get_active_for_guest("guest-1")
        assert active.check_in_id == "ci-2"
        assert await stores.check_in_store.get_active_for_guest("guest-2") is None

    async def test_check_out_keeps_requests(self, stores, add_request, check_in_guest):
        """退房更新入住记录时，已有请求的外键不受影响"""
        request = await add_request()
        record = await check_in_guest()
        await stores.check_in_store.upsert_check_in(
            record.model_copy(update={"status": CheckInStatus.CHECKED_OUT})
        )

        assert await stores.check_in_store.get_active_for_guest("guest-1") is None
        assert await stores.request_store.get_request(request.request_id) is not None


class TestRequestStore:
    """服务请求"""

    async def test_update_status_sets_completed_at(self, stores, add_request, clock):
        request = await add_request()
        now = clock.advance(minutes=30)

        updated = await stores.request_store.update_status(
            request.request_id,
            TaskStatus.COMPLETED,
            expected_status=TaskStatus.PENDING,
            expected_version=1,
            updated_at=now,
            completed_at=now,
        )
        assert updated is True

        loaded = await stores.request_store.get_request(request.request_id)
        assert loaded.status == TaskStatus.COMPLETED
        assert loaded.completed_at == now
        assert loaded.updated_at == now
        assert loaded.version == 2

    async def test_update_status_missing(self, stores, clock):
        assert await stores.request_store.update_status(
            "missing",
            TaskStatus.IN_PROGRESS,
            expected_status=TaskStatus.PENDING,
            expected_version=1,
            updated_at=clock.now(),
        ) is False

    async def test_update_status_stale_version_rejected(self, stores, add_request, clock):
        request = await add_request()
        first = await stores.request_store.update_status(
            request.request_id,
            TaskStatus.IN_PROGRESS,
            expected_status=TaskStatus.PENDING,
            expected_version=1,
            updated_at=clock.now(),
        )
        second = await stores.request_store.update_status(
            request.request_id,
            TaskStatus.CANCELLED,
            expected_status=TaskStatus.PENDING,
            expected_version=1,
            updated_at=clock.now(),
        )

        assert (first, second) == (True, False)
        loaded = await stores.request_store.get_request(request.request_id)
        assert loaded.status == TaskStatus.IN_PROGRESS

    async def test_save_request_conditional(self, stores, add_request, clock):
        request = await add_request()
        note = Note(content="guest asked twice", added_by="staff-1", added_at=clock.now())
        edited = request.model_copy(update={"notes": [note], "version": 2})

        assert await stores.request_store.save_request(
            edited, expected_status=TaskStatus.PENDING, expected_version=1
        ) is True
        assert await stores.request_store.save_request(
            edited, expected_status=TaskStatus.PENDING, expected_version=1
        ) is False

        loaded = await stores.request_store.get_request(request.request_id)
        assert loaded.notes == [note]
        assert loaded.version == 2

    async def test_append_note_keeps_status(self, stores, add_request, clock):
        """备注只追加到 notes 列，状态由其他写入方维护"""
        request = await add_request(status=TaskStatus.IN_PROGRESS)
        first = Note(content="first", added_by="staff-1", added_at=clock.now())
        second = Note(content="second", added_by="staff-2", added_at=clock.advance(minutes=1))

        assert await stores.request_store.append_note(request.request_id, first, clock.now())
        assert await stores.request_store.append_note(request.request_id, second, clock.now())
        assert not await stores.request_store.append_note("missing", first, clock.now())

        loaded = await stores.request_store.get_request(request.request_id)
        assert loaded.notes == [first, second]
        assert loaded.status == TaskStatus.IN_PROGRESS
        assert loaded.version == 3

    async def test_set_feedback_requires_completed(self, stores, add_request, clock):
        pending = await add_request()
        done = await add_request("guest-2", status=TaskStatus.COMPLETED)
        feedback = RequestFeedback(rating=4, submitted_at=clock.now())

        assert not await stores.request_store.set_feedback(
            pending.request_id, feedback, clock.now()
        )
        assert await stores.request_store.set_feedback(done.request_id, feedback, clock.now())

        loaded = await stores.request_store.get_request(done.request_id)
        assert loaded.feedback == feedback
        assert loaded.status == TaskStatus.COMPLETED

    async def test_list_for_guest_and_status(self, stores, add_request):
        await add_request("guest-1")
        await add_request("guest-2", status=TaskStatus.COMPLETED)

        assert len(await stores.request_store.list_for_guest("guest-1")) == 1
        completed = await stores.request_store.list_requests(status="completed")
        assert [r.guest_id for r in completed] == ["guest-2"]
        assert len(await stores.request_store.list_requests()) == 2
