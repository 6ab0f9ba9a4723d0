"""
API tests for the fleet: cars, locations, routes, trips and trip presets.
"""

from datetime import timedelta

import pytest

from cavgo.core.timeutils import utcnow
from cavgo.db.models import Car
from cavgo.domain.enums import LocationType, PrincipalKind, UserType
from tests.conftest import (
    acreate_car,
    acreate_company,
    acreate_driver,
    acreate_location,
    acreate_route,
    acreate_user,
    auth_header,
)

API = "/api/v1"


async def _company_manager(db, name="Volcano Express"):
    company = await acreate_company(db, name=name)
    manager = await acreate_user(db, user_type=UserType.COMPANY, company=company)
    return company, manager, auth_header(manager.id, PrincipalKind.USER)


class TestCars:
    @pytest.mark.anyio
    async def test_company_user_owns_the_cars_it_registers(self, client, db):
        company, _, headers = await _company_manager(db)

        response = await client.post(
            f"{API}/cars",
            json={"plate_number": "rab 123a", "number_of_seats": 18, "private_owner": "Ignored"},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["owner_company_id"] == str(company.id)
        assert body["private_owner"] is None
        assert body["is_occupied"] is False

    @pytest.mark.anyio
    async def test_admin_must_name_an_owner(self, client, admin_headers):
        response = await client.post(
            f"{API}/cars", json={"plate_number": "RAC001B", "number_of_seats": 4}, headers=admin_headers
        )

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_company_user_lists_only_its_own_cars(self, client, db, admin_headers):
        company, _, headers = await _company_manager(db)
        other_company = await acreate_company(db, name="Horizon")
        await acreate_car(db, company=company)
        await acreate_car(db, company=other_company)

        own = await client.get(f"{API}/cars", headers=headers)
        everything = await client.get(f"{API}/cars", headers=admin_headers)

        assert [car["owner_company_id"] for car in own.json()] == [str(company.id)]
        assert len(everything.json()) == 2

    @pytest.mark.anyio
    async def test_company_user_cannot_touch_another_companys_car(self, client, db):
        _, _, headers = await _company_manager(db)
        foreign = await acreate_car(db, company=await acreate_company(db, name="Horizon"))

        read = await client.get(f"{API}/cars/{foreign.id}", headers=headers)
        update = await client.patch(
            f"{API}/cars/{foreign.id}", json={"number_of_seats": 30}, headers=headers
        )

        assert read.status_code == 403
        assert update.status_code == 403

    @pytest.mark.anyio
    async def test_company_user_without_company_cannot_touch_private_cars(self, client, db):
        orphan = await acreate_user(db, user_type=UserType.COMPANY)
        headers = auth_header(orphan.id, PrincipalKind.USER)
        private = await acreate_car(db)

        read = await client.get(f"{API}/cars/{private.id}", headers=headers)
        delete = await client.delete(f"{API}/cars/{private.id}", headers=headers)

        assert private.owner_company_id is None
        assert read.status_code == 403
        assert delete.status_code == 403
        assert await db.get(Car, private.id) is not None

    @pytest.mark.anyio
    async def test_assigning_a_driver_links_both_sides(self, client, db, admin_headers):
        company = await acreate_company(db)
        car = await acreate_car(db, company=company)
        driver = await acreate_driver(db)

        response = await client.patch(
            f"{API}/cars/{car.id}", json={"driver_id": str(driver.id)}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["driver_id"] == str(driver.id)
        assert driver.car_id == car.id

    @pytest.mark.anyio
    async def test_customer_cannot_manage_cars(self, client, customer_headers):
        response = await client.get(f"{API}/cars", headers=customer_headers)

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_duplicate_plate_is_a_conflict(self, client, db, admin_headers):
        company = await acreate_company(db)
        await acreate_car(db, company=company, plate="RAD777C")

        response = await client.post(
            f"{API}/cars",
            json={"plate_number": "RAD777C", "number_of_seats": 4, "owner_company_id": str(company.id)},
            headers=admin_headers,
        )

        assert response.status_code == 409


class TestLocationsAndRoutes:
    @pytest.mark.anyio
    async def test_create_and_filter_locations(self, client, admin_headers):
        for name, location_type in (("Nyabugogo", "route_stop"), ("Kimironko", "bus_stop")):
            response = await client.post(
                f"{API}/locations",
                json={"name": name, "location_type": location_type, "lat": -1.94, "lng": 30.05},
                headers=admin_headers,
            )
            assert response.status_code == 201

        stops = await client.get(
            f"{API}/locations", params={"type": "bus_stop"}, headers=admin_headers
        )

        assert [loc["name"] for loc in stops.json()] == ["Kimironko"]

    @pytest.mark.anyio
    async def test_only_admins_create_routes(self, client, db, admin_headers, customer_headers):
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Musanze")
        payload = {"origin_id": str(origin.id), "destination_id": str(destination.id), "price": 2500}

        refused = await client.post(f"{API}/routes", json=payload, headers=customer_headers)
        created = await client.post(f"{API}/routes", json=payload, headers=admin_headers)

        assert refused.status_code == 403
        assert created.status_code == 201
        body = created.json()
        assert body["price"] == 2500
        assert body["origin"]["name"] == "Nyabugogo"
        assert body["destination"]["name"] == "Musanze"

    @pytest.mark.anyio
    async def test_any_principal_lists_routes(self, client, db, customer_headers):
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        await acreate_route(db, origin, destination, price=3000)

        response = await client.get(f"{API}/routes", headers=customer_headers)
        anonymous = await client.get(f"{API}/routes")

        assert response.status_code == 200
        assert [route["price"] for route in response.json()] == [3000]
        assert anonymous.status_code == 401

    @pytest.mark.anyio
    async def test_route_endpoints_must_differ(self, client, db, admin_headers):
        origin = await acreate_location(db, "Nyabugogo")

        response = await client.post(
            f"{API}/routes",
            json={"origin_id": str(origin.id), "destination_id": str(origin.id), "price": 100},
            headers=admin_headers,
        )

        assert response.status_code == 422


class TestTrips:
    @pytest.mark.anyio
    async def test_create_trip_replicates_and_starts_at_car_capacity(self, client, db, trip_store):
        company, _, headers = await _company_manager(db)
        origin = await acreate_location(db, "Nyabugogo", LocationType.BUS_STOP)
        destination = await acreate_location(db, "Rubavu", LocationType.BUS_STOP)
        stop = await acreate_location(db, "Mukamira")
        route = await acreate_route(db, origin, destination, price=4000)
        car = await acreate_car(db, company=company, seats=29)

        response = await client.post(
            f"{API}/trips",
            json={
                "route_id": str(route.id),
                "car_id": str(car.id),
                "boarding_time": (utcnow() + timedelta(hours=3)).isoformat(),
                "stop_points": [{"location_id": str(stop.id), "price": 2500}],
            },
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["available_seats"] == 29
        assert body["stop_points"] == [{"location_id": str(stop.id), "price": 2500}]
        assert trip_store.docs[body["id"]]["availableSeats"] == 29

    @pytest.mark.anyio
    async def test_company_cannot_schedule_on_a_foreign_car(self, client, db, trip):
        _, _, headers = await _company_manager(db)
        foreign = await acreate_car(db, company=await acreate_company(db, name="Horizon"))

        response = await client.post(
            f"{API}/trips",
            json={
                "route_id": str(trip.route_id),
                "car_id": str(foreign.id),
                "boarding_time": (utcnow() + timedelta(hours=1)).isoformat(),
            },
            headers=headers,
        )

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_changing_car_resets_seats(self, client, db, admin_headers, trip, trip_store):
        bigger = await acreate_car(db, seats=12)

        response = await client.patch(
            f"{API}/trips/{trip.id}", json={"car_id": str(bigger.id)}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["available_seats"] == 12
        assert trip_store.docs[str(trip.id)]["availableSeats"] == 12

    @pytest.mark.anyio
    async def test_delete_trip_removes_replica(self, client, admin_headers, trip, trip_store):
        response = await client.delete(f"{API}/trips/{trip.id}", headers=admin_headers)

        assert response.status_code == 204
        assert trip_store.deleted == [str(trip.id)]
        missing = await client.get(f"{API}/trips/{trip.id}")
        assert missing.status_code == 404

    @pytest.mark.anyio
    async def test_trips_are_public(self, client, trip):
        response = await client.get(f"{API}/trips")

        assert [t["id"] for t in response.json()] == [str(trip.id)]

    @pytest.mark.anyio
    async def test_driver_sees_trips_of_their_car(self, client, db, trip, customer_headers):
        car_trip_driver = await acreate_driver(db, car=await db.get(Car, trip.car_id))
        carless_driver = await acreate_driver(db)
        headers = auth_header(car_trip_driver.id, PrincipalKind.DRIVER)

        own = await client.get(f"{API}/trips/driver/{car_trip_driver.id}", headers=headers)
        other = await client.get(f"{API}/trips/driver/{carless_driver.id}", headers=headers)
        customer = await client.get(
            f"{API}/trips/driver/{car_trip_driver.id}", headers=customer_headers
        )

        assert [t["id"] for t in own.json()] == [str(trip.id)]
        assert other.status_code == 403
        assert customer.status_code == 403


class TestTripPresets:
    @pytest.mark.anyio
    async def test_presets_are_scoped_to_the_company(self, client, db):
        company, _, headers = await _company_manager(db)
        _, _, rival_headers = await _company_manager(db, name="Horizon")
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        route = await acreate_route(db, origin, destination)

        created = await client.post(
            f"{API}/trip-presets",
            json={"route_id": str(route.id), "preset_name": "Morning Huye"},
            headers=headers,
        )
        preset_id = created.json()["id"]

        assert created.status_code == 201
        assert created.json()["company_id"] == str(company.id)
        assert len((await client.get(f"{API}/trip-presets", headers=headers)).json()) == 1
        assert (await client.get(f"{API}/trip-presets", headers=rival_headers)).json() == []
        rival_read = await client.get(f"{API}/trip-presets/{preset_id}", headers=rival_headers)
        assert rival_read.status_code == 403

    @pytest.mark.anyio
    async def test_company_user_without_company_cannot_read_unowned_presets(
        self, client, db, admin_headers
    ):
        orphan = await acreate_user(db, user_type=UserType.COMPANY)
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        route = await acreate_route(db, origin, destination)
        created = await client.post(
            f"{API}/trip-presets",
            json={"route_id": str(route.id), "preset_name": "Admin Huye"},
            headers=admin_headers,
        )

        response = await client.get(
            f"{API}/trip-presets/{created.json()['id']}",
            headers=auth_header(orphan.id, PrincipalKind.USER),
        )

        assert created.json()["company_id"] is None
        assert response.status_code == 403
        listed = await client.get(
            f"{API}/trip-presets", headers=auth_header(orphan.id, PrincipalKind.USER)
        )
        assert listed.json() == []

    @pytest.mark.anyio
    async def test_identical_preset_is_a_conflict(self, client, db):
        _, _, headers = await _company_manager(db)
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        stop = await acreate_location(db, "Muhanga")
        route = await acreate_route(db, origin, destination)
        payload = {
            "route_id": str(route.id),
            "preset_name": "Evening Huye",
            "stop_points": [{"location_id": str(stop.id), "price": 1500}],
        }

        first = await client.post(f"{API}/trip-presets", json=payload, headers=headers)
        second = await client.post(
            f"{API}/trip-presets", json={**payload, "preset_name": "Evening Huye 2"}, headers=headers
        )

        assert first.status_code == 201
        assert second.status_code == 409

    @pytest.mark.anyio
    async def test_rename_and_delete_preset(self, client, db):
        _, _, headers = await _company_manager(db)
        origin = await acreate_location(db, "Nyabugogo")
        destination = await acreate_location(db, "Huye")
        route = await acreate_route(db, origin, destination)
        created = await client.post(
            f"{API}/trip-presets",
            json={"route_id": str(route.id), "preset_name": "Noon Huye"},
            headers=headers,
        )
        preset_id = created.json()["id"]

        renamed = await client.patch(
            f"{API}/trip-presets/{preset_id}", json={"preset_name": "Midday Huye"}, headers=headers
        )
        deleted = await client.delete(f"{API}/trip-presets/{preset_id}", headers=headers)

        assert renamed.json()["preset_name"] == "Midday Huye"
        assert deleted.status_code == 204
        assert (await client.get(f"{API}/trip-presets", headers=headers)).json() == []
