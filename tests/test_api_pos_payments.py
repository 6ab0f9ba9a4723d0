"""
API tests for POS machines, mobile-money payments and passenger schedules.
"""

import json
import uuid
from datetime import timedelta

import pytest

from cavgo.core.timeutils import utcnow
from cavgo.db.models import Booking
from cavgo.domain.enums import BookingStatus, PosStatus, PrincipalKind
from tests.conftest import (
    acreate_agent,
    acreate_car,
    acreate_location,
    acreate_pos,
    acreate_route,
    acreate_user,
    auth_header,
)

API = "/api/v1"
CALLBACK_HEADERS = {"X-Callback-Token": "test-callback-token"}


async def _pending_booking(client, trip, headers) -> dict:
    response = await client.post(
        f"{API}/bookings",
        json={"trip_id": str(trip.id), "number_of_tickets": 1, "price": 500},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestPosMachines:
    @pytest.mark.anyio
    async def test_register_links_car_by_plate(self, client, db, customer_headers):
        car = await acreate_car(db, plate="RAE555D")

        response = await client.post(
            f"{API}/pos-machines",
            json={"serial_number": "SN-0001", "car_plate": "RAE555D"},
            headers=customer_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "active"
        assert body["linked_car_id"] == str(car.id)

    @pytest.mark.anyio
    async def test_unknown_plate_is_not_found(self, client, customer_headers):
        response = await client.post(
            f"{API}/pos-machines",
            json={"serial_number": "SN-0002", "car_plate": "RZZ000Z"},
            headers=customer_headers,
        )

        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_admin_issues_token_that_authenticates_the_device(self, client, db, admin_headers):
        car = await acreate_car(db)
        pos = await acreate_pos(db, car)

        response = await client.post(
            f"{API}/pos-machines/{pos.serial_number}/token", headers=admin_headers
        )

        assert response.status_code == 200
        token = response.json()["token"]
        verify = await client.post(
            f"{API}/tickets/verify",
            json={"qr_code_data": "Zm9yZ2Vk"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert verify.status_code == 200
        assert verify.json()["valid"] is False

    @pytest.mark.anyio
    async def test_device_reads_its_own_record(self, client, db, customer_headers):
        car = await acreate_car(db)
        pos = await acreate_pos(db, car)

        own = await client.get(
            f"{API}/pos-machines/me", headers=auth_header(pos.id, PrincipalKind.POS)
        )
        as_user = await client.get(f"{API}/pos-machines/me", headers=customer_headers)

        assert own.status_code == 200
        assert own.json()["serial_number"] == pos.serial_number
        assert own.json()["linked_car_id"] == str(car.id)
        assert as_user.status_code == 401

    @pytest.mark.anyio
    async def test_inactive_device_gets_no_token(self, client, db, admin_headers):
        car = await acreate_car(db)
        pos = await acreate_pos(db, car)

        updated = await client.patch(
            f"{API}/pos-machines/{pos.serial_number}",
            json={"status": "maintenance"},
            headers=admin_headers,
        )
        response = await client.post(
            f"{API}/pos-machines/{pos.serial_number}/token", headers=admin_headers
        )

        assert updated.json()["status"] == "maintenance"
        assert response.status_code == 403
        assert response.json()["message"] == "POS machine is inactive"

    @pytest.mark.anyio
    async def test_moving_device_to_another_car(self, client, db, admin_headers):
        pos = await acreate_pos(db, await acreate_car(db))
        new_car = await acreate_car(db, plate="RAF808E")

        response = await client.patch(
            f"{API}/pos-machines/{pos.serial_number}",
            json={"car_plate": "RAF808E"},
            headers=admin_headers,
        )

        assert response.json()["linked_car_id"] == str(new_car.id)

    @pytest.mark.anyio
    async def test_listing_devices_is_admin_only(self, client, db, customer_headers):
        await acreate_pos(db, await acreate_car(db), status=PosStatus.INACTIVE)

        response = await client.get(f"{API}/pos-machines", headers=customer_headers)

        assert response.status_code == 403


class TestPayments:
    @pytest.mark.anyio
    async def test_request_records_pending_payment_and_calls_gateway(
        self, client, trip, customer, customer_headers, momo_gateway
    ):
        booking = await _pending_booking(client, trip, customer_headers)

        response = await client.post(
            f"{API}/payments",
            json={"booking_id": booking["id"], "phone_number": "0781234567"},
            headers=customer_headers,
        )

        assert response.status_code == 201
        payment = response.json()
        assert payment["payment_status"] == "Pending"
        assert payment["amount_paid"] == 500
        assert payment["car_id"] == str(trip.car_id)
        assert payment["user_id"] == str(customer.id)
        assert payment["transaction_id"]

        sent = momo_gateway.requests[0]
        assert sent.url.path.endswith("/requestpayment/")
        body = json.loads(sent.content)
        assert body["requesttransactionid"] == payment["transaction_id"]

    @pytest.mark.anyio
    async def test_successful_callback_lets_the_watcher_confirm_the_booking(
        self, app, client, trip, customer_headers
    ):
        booking = await _pending_booking(client, trip, customer_headers)
        payment = (
            await client.post(
                f"{API}/payments",
                json={"booking_id": booking["id"], "phone_number": "0781234567"},
                headers=customer_headers,
            )
        ).json()

        callback = await client.post(
            f"{API}/payments/callback",
            json={
                "requesttransactionid": payment["transaction_id"],
                "status": "Successfull",
                "responsecode": "01",
            },
            headers=CALLBACK_HEADERS,
        )
        status = await app.state.payment_watcher.check_once(uuid.UUID(booking["id"]))

        assert callback.status_code == 200
        assert callback.json()["payment_status"] == "Completed"
        assert status.value == "Waiting Board"

    @pytest.mark.anyio
    async def test_callback_without_token_is_unauthorized(self, app, client, trip, customer_headers):
        booking = await _pending_booking(client, trip, customer_headers)
        payment = (
            await client.post(
                f"{API}/payments",
                json={"booking_id": booking["id"], "phone_number": "0781234567"},
                headers=customer_headers,
            )
        ).json()
        settlement = {
            "requesttransactionid": payment["transaction_id"],
            "status": "Successfull",
            "responsecode": "01",
        }

        anonymous = await client.post(f"{API}/payments/callback", json=settlement)
        as_passenger = await client.post(
            f"{API}/payments/callback", json=settlement, headers=customer_headers
        )
        wrong_token = await client.post(
            f"{API}/payments/callback",
            json=settlement,
            headers={"X-Callback-Token": "guessed"},
        )
        status = await app.state.payment_watcher.check_once(uuid.UUID(booking["id"]))
        mine = await client.get(f"{API}/payments/{payment['id']}", headers=customer_headers)

        assert anonymous.status_code == 401
        assert as_passenger.status_code == 401
        assert wrong_token.status_code == 403
        assert status == BookingStatus.PENDING
        assert mine.json()["payment_status"] == "Pending"

    @pytest.mark.anyio
    async def test_callback_token_in_query_string(self, client, trip, customer_headers):
        booking = await _pending_booking(client, trip, customer_headers)
        payment = (
            await client.post(
                f"{API}/payments",
                json={"booking_id": booking["id"], "phone_number": "0781234567"},
                headers=customer_headers,
            )
        ).json()

        callback = await client.post(
            f"{API}/payments/callback",
            params={"token": "test-callback-token"},
            json={
                "requesttransactionid": payment["transaction_id"],
                "status": "Successfull",
                "responsecode": "01",
            },
        )

        assert callback.status_code == 200
        assert callback.json()["payment_status"] == "Completed"

    @pytest.mark.anyio
    async def test_cannot_pay_for_someone_elses_booking(
        self, client, db, trip, customer_headers, momo_gateway
    ):
        booking = await _pending_booking(client, trip, customer_headers)
        stranger = await acreate_user(db)

        response = await client.post(
            f"{API}/payments",
            json={"booking_id": booking["id"], "phone_number": "0781234567"},
            headers=auth_header(stranger.id, PrincipalKind.USER),
        )

        assert response.status_code == 403
        assert momo_gateway.requests == []

    @pytest.mark.anyio
    async def test_only_pending_bookings_can_be_paid(
        self, client, db, trip, customer_headers, momo_gateway
    ):
        booking = await _pending_booking(client, trip, customer_headers)
        row = await db.get(Booking, uuid.UUID(booking["id"]))
        row.status = BookingStatus.CANCELLED
        await db.commit()

        response = await client.post(
            f"{API}/payments",
            json={"booking_id": booking["id"], "phone_number": "0781234567"},
            headers=customer_headers,
        )

        assert response.status_code == 409
        assert response.json()["details"]["status"] == "Cancelled"
        assert momo_gateway.requests == []

    @pytest.mark.anyio
    async def test_failed_callback(self, client, trip, customer_headers):
        booking = await _pending_booking(client, trip, customer_headers)
        payment = (
            await client.post(
                f"{API}/payments",
                json={"booking_id": booking["id"], "phone_number": "0781234567"},
                headers=customer_headers,
            )
        ).json()

        callback = await client.post(
            f"{API}/payments/callback",
            json={
                "requesttransactionid": payment["transaction_id"],
                "status": "Failed",
                "responsecode": "02",
            },
            headers=CALLBACK_HEADERS,
        )

        assert callback.json()["payment_status"] == "Failed"

    @pytest.mark.anyio
    async def test_callback_for_unknown_transaction(self, client):
        response = await client.post(
            f"{API}/payments/callback",
            json={"requesttransactionid": "nope", "status": "Successfull", "responsecode": "01"},
            headers=CALLBACK_HEADERS,
        )

        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_gateway_rejection_is_a_bad_gateway(
        self, client, trip, customer_headers, momo_gateway
    ):
        booking = await _pending_booking(client, trip, customer_headers)
        momo_gateway.status_code = 500

        response = await client.post(
            f"{API}/payments",
            json={"booking_id": booking["id"], "phone_number": "0781234567"},
            headers=customer_headers,
        )

        assert response.status_code == 502
        assert response.json()["error"] == "PaymentGatewayError"

    @pytest.mark.anyio
    async def test_phone_must_be_ten_digits(self, client, trip, customer_headers):
        booking = await _pending_booking(client, trip, customer_headers)

        response = await client.post(
            f"{API}/payments",
            json={"booking_id": booking["id"], "phone_number": "+250781234"},
            headers=customer_headers,
        )

        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_users_only_see_their_own_payments(self, client, db, trip, customer_headers):
        booking = await _pending_booking(client, trip, customer_headers)
        payment = (
            await client.post(
                f"{API}/payments",
                json={"booking_id": booking["id"], "phone_number": "0781234567"},
                headers=customer_headers,
            )
        ).json()
        stranger = await acreate_user(db)
        stranger_headers = auth_header(stranger.id, PrincipalKind.USER)

        mine = await client.get(f"{API}/payments/me", headers=customer_headers)
        theirs = await client.get(f"{API}/payments/{payment['id']}", headers=stranger_headers)

        assert [p["id"] for p in mine.json()] == [payment["id"]]
        assert theirs.status_code == 403


class TestDeposits:
    @pytest.mark.anyio
    async def test_agent_requests_deposit(self, client, db, momo_gateway):
        agent = await acreate_agent(db)

        response = await client.post(
            f"{API}/payments/deposits",
            json={"phone_number": "0789998877", "amount": 7000, "description": "Float top-up"},
            headers=auth_header(agent.id, PrincipalKind.AGENT),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["agent_id"] == str(agent.id)
        assert body["reason"] == "Deposit"
        assert body["amount"] == 7000
        assert momo_gateway.requests[0].url.path.endswith("/requestdeposit/")

    @pytest.mark.anyio
    async def test_users_cannot_request_deposits(self, client, customer_headers):
        response = await client.post(
            f"{API}/payments/deposits",
            json={"phone_number": "0789998877", "amount": 7000, "description": "Float top-up"},
            headers=customer_headers,
        )

        assert response.status_code == 401


class TestSchedules:
    @pytest.mark.anyio
    async def test_schedule_matches_a_direct_route(self, client, db, customer, customer_headers):
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        route = await acreate_route(db, origin, destination, price=3000)

        response = await client.post(
            f"{API}/schedules",
            json={
                "origin_id": str(origin.id),
                "destination_id": str(destination.id),
                "time": (utcnow() + timedelta(days=1)).isoformat(),
            },
            headers=customer_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == str(customer.id)
        assert body["origin_type"] == "route"
        assert body["destination_type"] == "route"
        assert body["matched_route_ids"] == [str(route.id)]

    @pytest.mark.anyio
    async def test_unserved_schedule_has_no_match(self, client, db, customer_headers):
        origin = await acreate_location(db, "Gisenyi")
        destination = await acreate_location(db, "Kibuye")

        response = await client.post(
            f"{API}/schedules",
            json={
                "origin_id": str(origin.id),
                "destination_id": str(destination.id),
                "time": (utcnow() + timedelta(days=1)).isoformat(),
            },
            headers=customer_headers,
        )

        body = response.json()
        assert body["origin_type"] == "none"
        assert body["matched_route_ids"] == []

    @pytest.mark.anyio
    async def test_only_the_owner_changes_a_schedule(self, client, db, customer_headers):
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        created = await client.post(
            f"{API}/schedules",
            json={
                "origin_id": str(origin.id),
                "destination_id": str(destination.id),
                "time": (utcnow() + timedelta(days=1)).isoformat(),
            },
            headers=customer_headers,
        )
        schedule_id = created.json()["id"]
        stranger = await acreate_user(db)
        stranger_headers = auth_header(stranger.id, PrincipalKind.USER)

        refused = await client.patch(
            f"{API}/schedules/{schedule_id}", json={"status": "cancelled"}, headers=stranger_headers
        )
        changed = await client.patch(
            f"{API}/schedules/{schedule_id}", json={"status": "cancelled"}, headers=customer_headers
        )
        other_users = await client.get(
            f"{API}/schedules/user",
            params={"user_id": created.json()["user_id"]},
            headers=stranger_headers,
        )
        deleted = await client.delete(f"{API}/schedules/{schedule_id}", headers=customer_headers)

        assert refused.status_code == 403
        assert changed.json()["status"] == "cancelled"
        assert other_users.status_code == 403
        assert deleted.status_code == 204
        assert (await client.get(f"{API}/schedules/user", headers=customer_headers)).json() == []
