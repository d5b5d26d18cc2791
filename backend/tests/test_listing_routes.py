"""
Roomly Backend - Listing & Gallery Route Tests
===============================================

What:  /v1/listings CRUD, browsing (search, sort, pagination), ownership
       rules and gallery management, including multipart uploads.
"""

from unittest.mock import patch

import pytest

from roomly.services.file_service import file_service


async def _create_listing(client, headers, payload, **overrides) -> int:
    body = {**payload, **overrides}
    response = await client.post("/v1/listings/", headers=headers, json=body)
    assert response.status_code == 201, response.text
    return response.json()["listingId"]


class TestCreateAndRead:
    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com", name="Hosting Hana")
        listing_id = await _create_listing(test_client, headers, listing_payload)

        # Reading is public
        response = await test_client.get(f"/v1/listings/{listing_id}")
        assert response.status_code == 200
        body = response.json()
        listing = body["listing"]
        assert listing["title"] == "Cosy cabin by the lake"
        assert listing["location"]["region"] == "Europe"
        assert listing["ownerName"] == "Hosting Hana"
        assert [image["url"] for image in body["listingImages"]] == listing_payload["images"]

    @pytest.mark.asyncio
    async def test_create_requires_login(self, test_client, listing_payload):
        response = await test_client.post("/v1/listings/", json=listing_payload)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_validation(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        body = {**listing_payload, "title": "", "price": 0, "location": {"flag": ""}}
        response = await test_client.post("/v1/listings/", headers=headers, json=body)

        assert response.status_code == 422
        details = response.json()["details"]
        assert details["title"] == "must be provided"
        assert details["price"] == "must be greater than zero"
        assert details["location.flag"] == "must be provided"

    @pytest.mark.asyncio
    async def test_get_missing_and_malformed(self, test_client):
        assert (await test_client.get("/v1/listings/9999")).status_code == 404
        assert (await test_client.get("/v1/listings/0")).status_code == 404
        assert (await test_client.get("/v1/listings/not-a-number")).status_code == 400

    @pytest.mark.asyncio
    async def test_ids_beyond_bigint_are_rejected(self, served_client, create_user, listing_payload):
        _, headers = await create_user("big-ids@example.com")
        too_big = "99999999999999999999999"

        response = await served_client.get(f"/v1/listings/{too_big}")
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"

        assert (await served_client.get(f"/v1/listings/{2**63 - 1}")).status_code == 404
        assert (await served_client.patch(f"/v1/listings/{too_big}", headers=headers, json={"title": "x"})).status_code == 400
        assert (await served_client.delete(f"/v1/listings/images/{too_big}", headers=headers)).status_code == 400
        assert (await served_client.get(f"/v1/bookings/{too_big}", headers=headers)).status_code == 400
        assert (await served_client.post(f"/v1/auth/verify/{too_big}", json={"code": "abc-def"})).status_code == 400

        response = await served_client.post("/v1/listings/", headers=headers, json={**listing_payload, "guests": 2**40})
        assert response.status_code == 400


class TestBrowse:
    @pytest.mark.asyncio
    async def test_search_sort_and_paginate(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        await _create_listing(test_client, headers, listing_payload, title="Beach hut", price=300, category="Beach")
        await _create_listing(test_client, headers, listing_payload, title="Lake lodge", price=100)
        await _create_listing(test_client, headers, listing_payload, title="City loft", price=200, category="City")

        response = await test_client.get("/v1/listings/", params={"sort": "-price", "page_size": 2})
        assert response.status_code == 200
        body = response.json()
        assert [item["price"] for item in body["listings"]] == [300, 200]
        assert body["metadata"] == {
            "current_page": 1,
            "page_size": 2,
            "first_page": 1,
            "last_page": 2,
            "total_records": 3,
        }

        response = await test_client.get("/v1/listings/", params={"search": "BEACH"})
        titles = [item["title"] for item in response.json()["listings"]]
        assert titles == ["Beach hut"]

    @pytest.mark.asyncio
    async def test_no_results_has_empty_metadata(self, test_client):
        response = await test_client.get("/v1/listings/", params={"search": "nowhere"})
        assert response.status_code == 200
        assert response.json() == {"listings": [], "metadata": {}}

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        await _create_listing(test_client, headers, listing_payload)
        response = await test_client.get("/v1/listings/", params={"search": "%"})
        assert response.json()["listings"] == []

    @pytest.mark.asyncio
    async def test_invalid_filters(self, test_client):
        response = await test_client.get(
            "/v1/listings/", params={"sort": "password_hash", "page": 0, "page_size": 500}
        )
        assert response.status_code == 422
        assert response.json()["details"] == {
            "page": "must be greater than zero",
            "page_size": "must be a maximum of 100",
            "sort": "invalid sort value",
        }

    @pytest.mark.asyncio
    async def test_user_listings(self, test_client, create_user, listing_payload):
        _, host_headers = await create_user("host@example.com")
        _, other_headers = await create_user("other@example.com")
        await _create_listing(test_client, host_headers, listing_payload)
        await _create_listing(test_client, other_headers, listing_payload, title="Not mine")

        response = await test_client.get("/v1/listings/user-listings", headers=host_headers)
        assert response.status_code == 200
        listings = response.json()["listings"]
        assert len(listings) == 1
        assert listings[0]["images"][0]["url"] == listing_payload["images"][0]


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_partial_update(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        listing_id = await _create_listing(test_client, headers, listing_payload)

        response = await test_client.patch(
            f"/v1/listings/{listing_id}",
            headers=headers,
            json={"price": 150, "location": {"label": "Southern Norway"}},
        )
        assert response.status_code == 200
        listing = response.json()["listing"]
        assert listing["price"] == 150
        assert listing["title"] == listing_payload["title"]
        assert listing["location"]["label"] == "Southern Norway"
        assert listing["location"]["region"] == "Europe"

    @pytest.mark.asyncio
    async def test_update_invalid_merge(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        listing_id = await _create_listing(test_client, headers, listing_payload)

        response = await test_client.patch(f"/v1/listings/{listing_id}", headers=headers, json={"guests": 0})
        assert response.status_code == 422
        assert response.json()["details"] == {"guests": "must be greater than zero"}

    @pytest.mark.asyncio
    async def test_other_users_cannot_modify(self, test_client, create_user, listing_payload):
        _, host_headers = await create_user("host@example.com")
        _, intruder_headers = await create_user("intruder@example.com")
        listing_id = await _create_listing(test_client, host_headers, listing_payload)

        response = await test_client.patch(
            f"/v1/listings/{listing_id}", headers=intruder_headers, json={"price": 1}
        )
        assert response.status_code == 404
        response = await test_client.delete(f"/v1/listings/delete/{listing_id}", headers=intruder_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        listing_id = await _create_listing(test_client, headers, listing_payload)

        response = await test_client.delete(f"/v1/listings/delete/{listing_id}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"message": "listing successfully deleted"}
        assert (await test_client.get(f"/v1/listings/{listing_id}")).status_code == 404


class TestGallery:
    @pytest.mark.asyncio
    async def test_add_and_remove_image(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        listing_id = await _create_listing(test_client, headers, listing_payload, images=[])

        response = await test_client.post(
            f"/v1/listings/{listing_id}/images",
            headers=headers,
            json={"url": "https://images.example.com/extra.jpg"},
        )
        assert response.status_code == 201
        image = response.json()["image"]
        assert image["listingId"] == listing_id

        response = await test_client.delete(f"/v1/listings/images/{image['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"message": "image successfully removed"}

        response = await test_client.delete(f"/v1/listings/images/{image['id']}", headers=headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_add_image_to_foreign_listing(self, test_client, create_user, listing_payload):
        _, host_headers = await create_user("host@example.com")
        _, other_headers = await create_user("other@example.com")
        listing_id = await _create_listing(test_client, host_headers, listing_payload)

        response = await test_client.post(
            f"/v1/listings/{listing_id}/images",
            headers=other_headers,
            json={"url": "https://images.example.com/sneaky.jpg"},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_gallery_photos(self, test_client, create_user, listing_payload, sample_image_bytes):
        _, headers = await create_user("host@example.com")
        listing_id = await _create_listing(test_client, headers, listing_payload, images=[])

        with patch.object(file_service, "_sniff_mime", return_value="image/jpeg"):
            response = await test_client.post(
                f"/v1/listings/images/{listing_id}",
                headers=headers,
                files=[
                    ("files", ("one.jpg", sample_image_bytes, "image/jpeg")),
                    ("files", ("two.jpg", sample_image_bytes, "image/jpeg")),
                ],
            )

        assert response.status_code == 201
        images = response.json()["images"]
        assert len(images) == 2
        assert all(image["url"].startswith("/v1/files/") for image in images)

        served = await test_client.get(images[0]["url"])
        assert served.status_code == 200
        assert served.content == sample_image_bytes

    @pytest.mark.asyncio
    async def test_upload_gallery_rejects_bad_type(self, test_client, create_user, listing_payload):
        _, headers = await create_user("host@example.com")
        listing_id = await _create_listing(test_client, headers, listing_payload, images=[])

        response = await test_client.post(
            f"/v1/listings/images/{listing_id}",
            headers=headers,
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )
        assert response.status_code == 422
        assert "file" in response.json()["details"]
