"""
Roomly Backend - Booking Route Tests
=====================================

What:  /v1/bookings: server-side pricing, date validation, overlap
       conflicts, visibility rules and cancellation.
"""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from roomly.models.booking import Booking


async def _setup(test_client, create_user, listing_payload):
    """A host with one listing (120/night) and a separate guest."""
    _, host_headers = await create_user("host@example.com", name="Host Hana")
    _, guest_headers = await create_user("guest@example.com", name="Guest Gil")
    response = await test_client.post("/v1/listings/", headers=host_headers, json=listing_payload)
    listing_id = response.json()["listingId"]
    return listing_id, host_headers, guest_headers


async def _book(test_client, headers, listing_id, start, end):
    return await test_client.post(
        "/v1/bookings/",
        headers=headers,
        json={"listingId": listing_id, "startDate": start, "endDate": end},
    )


class TestCreateBooking:
    @pytest.mark.asyncio
    async def test_price_is_computed_from_listing(self, test_client, create_user, listing_payload):
        listing_id, _, guest_headers = await _setup(test_client, create_user, listing_payload)

        response = await test_client.post(
            "/v1/bookings/",
            headers=guest_headers,
            json={
                "listingId": listing_id,
                "startDate": "2030-07-01",
                "endDate": "2030-07-04",
                "price": 1,
                "total": 1,
            },
        )
        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["price"] == 120
        assert booking["total"] == 360
        assert booking["checkIn"] == "2030-07-01"
        assert booking["checkOut"] == "2030-07-04"
        assert booking["guestName"] == "Guest Gil"
        assert booking["listing"]["id"] == listing_id

    @pytest.mark.asyncio
    async def test_date_validation(self, test_client, create_user, listing_payload):
        listing_id, _, guest_headers = await _setup(test_client, create_user, listing_payload)

        response = await test_client.post("/v1/bookings/", headers=guest_headers, json={"listingId": listing_id})
        assert response.status_code == 422
        assert response.json()["details"] == {
            "startDate": "must be provided",
            "endDate": "must be provided",
        }

        response = await _book(test_client, guest_headers, listing_id, "2030-07-04", "2030-07-04")
        assert response.status_code == 422
        assert response.json()["details"] == {"endDate": "must be after the start date"}

    @pytest.mark.asyncio
    async def test_unknown_listing(self, test_client, create_user):
        _, headers = await create_user("guest@example.com")
        response = await _book(test_client, headers, 4242, "2030-07-01", "2030-07-02")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cannot_book_own_listing(self, test_client, create_user, listing_payload):
        listing_id, host_headers, _ = await _setup(test_client, create_user, listing_payload)
        response = await _book(test_client, host_headers, listing_id, "2030-07-01", "2030-07-02")
        assert response.status_code == 422
        assert response.json()["details"] == {"listingId": "you cannot book your own listing"}

    @pytest.mark.asyncio
    async def test_overlap_conflict(self, test_client, create_user, listing_payload):
        listing_id, _, guest_headers = await _setup(test_client, create_user, listing_payload)
        _, second_headers = await create_user("second@example.com")

        assert (await _book(test_client, guest_headers, listing_id, "2030-07-01", "2030-07-05")).status_code == 201

        response = await _book(test_client, second_headers, listing_id, "2030-07-04", "2030-07-08")
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

        # check_out is exclusive: back-to-back stays are fine
        response = await _book(test_client, second_headers, listing_id, "2030-07-05", "2030-07-08")
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_totals_beyond_bigint_are_rejected(self, test_client, create_user, listing_payload):
        _, host_headers = await create_user("luxury-host@example.com")
        _, guest_headers = await create_user("luxury-guest@example.com")
        response = await test_client.post(
            "/v1/listings/", headers=host_headers, json={**listing_payload, "price": 2**62}
        )
        listing_id = response.json()["listingId"]

        response = await _book(test_client, guest_headers, listing_id, "2030-07-01", "2030-07-02")
        assert response.status_code == 201
        assert response.json()["booking"]["total"] == 2**62

        response = await _book(test_client, guest_headers, listing_id, "2031-07-01", "2031-07-04")
        assert response.status_code == 422
        assert response.json()["details"] == {"endDate": "stay is too long for this listing's price"}


class TestVisibility:
    @pytest.mark.asyncio
    async def test_guest_host_and_stranger(self, test_client, create_user, listing_payload):
        listing_id, host_headers, guest_headers = await _setup(test_client, create_user, listing_payload)
        _, stranger_headers = await create_user("stranger@example.com")
        booking_id = (await _book(test_client, guest_headers, listing_id, "2030-08-01", "2030-08-03")).json()["booking"]["id"]

        assert (await test_client.get(f"/v1/bookings/{booking_id}", headers=guest_headers)).status_code == 200
        assert (await test_client.get(f"/v1/bookings/{booking_id}", headers=host_headers)).status_code == 200
        assert (await test_client.get(f"/v1/bookings/{booking_id}", headers=stranger_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_user_and_property_bookings(self, test_client, create_user, listing_payload):
        listing_id, host_headers, guest_headers = await _setup(test_client, create_user, listing_payload)
        await _book(test_client, guest_headers, listing_id, "2030-08-01", "2030-08-03")
        await _book(test_client, guest_headers, listing_id, "2030-09-01", "2030-09-03")

        response = await test_client.get("/v1/bookings/user-bookings", headers=guest_headers)
        assert response.status_code == 200
        assert [b["checkIn"] for b in response.json()["bookings"]] == ["2030-09-01", "2030-08-01"]

        response = await test_client.get(f"/v1/bookings/property-bookings/{listing_id}", headers=host_headers)
        assert response.status_code == 200
        assert len(response.json()["bookings"]) == 2

        response = await test_client.get(f"/v1/bookings/property-bookings/{listing_id}", headers=guest_headers)
        assert response.status_code == 403

        response = await test_client.get("/v1/bookings/property-bookings/999", headers=host_headers)
        assert response.status_code == 404


class TestCancel:
    @pytest.mark.asyncio
    async def test_guest_cancels(self, test_client, create_user, listing_payload):
        listing_id, _, guest_headers = await _setup(test_client, create_user, listing_payload)
        booking_id = (await _book(test_client, guest_headers, listing_id, "2030-08-01", "2030-08-03")).json()["booking"]["id"]

        response = await test_client.delete(f"/v1/bookings/{booking_id}", headers=guest_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "booking successfully cancelled"}

        response = await test_client.delete(f"/v1/bookings/{booking_id}", headers=guest_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_host_cancels_and_stranger_cannot(self, test_client, create_user, listing_payload):
        listing_id, host_headers, guest_headers = await _setup(test_client, create_user, listing_payload)
        _, stranger_headers = await create_user("stranger@example.com")
        booking_id = (await _book(test_client, guest_headers, listing_id, "2030-08-01", "2030-08-03")).json()["booking"]["id"]

        assert (await test_client.delete(f"/v1/bookings/{booking_id}", headers=stranger_headers)).status_code == 404
        assert (await test_client.delete(f"/v1/bookings/{booking_id}", headers=host_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_deleting_listing_removes_bookings(self, test_client, create_user, listing_payload):
        listing_id, host_headers, guest_headers = await _setup(test_client, create_user, listing_payload)
        await _book(test_client, guest_headers, listing_id, "2030-08-01", "2030-08-03")

        await test_client.delete(f"/v1/listings/delete/{listing_id}", headers=host_headers)

        response = await test_client.get("/v1/bookings/user-bookings", headers=guest_headers)
        assert response.json()["bookings"] == []


class TestBookingTable:
    @pytest.mark.asyncio
    async def test_check_out_must_follow_check_in(self, db_session, create_user, listing_payload, test_client):
        host, host_headers = await create_user("table-host@example.com")
        guest, _ = await create_user("table-guest@example.com")
        response = await test_client.post("/v1/listings/", headers=host_headers, json=listing_payload)
        listing_id = response.json()["listingId"]

        db_session.add(
            Booking(
                listing_id=listing_id,
                guest_id=guest.id,
                check_in=date(2030, 7, 1),
                check_out=date(2030, 7, 1),
                price=120,
                total=0,
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.flush()
