from __future__ import annotations

from typing import Any

from rest_framework.test import APITestCase

from lands.models import Land


def _square(lon: float = 36.8, lat: float = -1.3) -> dict[str, Any]:
    size = 0.001
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lon, lat],
                [lon + size, lat],
                [lon + size, lat + size],
                [lon, lat + size],
                [lon, lat],
            ]
        ],
    }


class LandsApiTests(APITestCase):
    def test_create_list_and_retrieve(self) -> None:
        created = self.client.post(
            "/api/v1/lands/",
            {"name": "  Upper terrace ", "geometry": _square()},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        land_id = created.json()["id"]
        self.assertEqual(created.json()["name"], "Upper terrace")

        second = self.client.post(
            "/api/v1/lands/",
            {"name": "Lower terrace", "geometry": _square(lat=-1.31)},
            format="json",
        )
        self.assertEqual(second.status_code, 201)

        listed = self.client.get("/api/v1/lands/")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(
            {item["name"] for item in listed.json()},
            {"Upper terrace", "Lower terrace"},
        )

        detail = self.client.get(f"/api/v1/lands/{land_id}/")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["geometry"]["type"], "Polygon")

    def test_self_intersecting_geometry_rejected(self) -> None:
        bowtie = _square()
        ring = bowtie["coordinates"][0]
        ring[1], ring[2] = ring[2], ring[1]
        res = self.client.post(
            "/api/v1/lands/",
            {"name": "Bow tie", "geometry": bowtie},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        body = res.json()
        self.assertEqual(body["message"], "Validation failed")
        self.assertIn("geometry", body["errors"])
        self.assertFalse(Land.objects.exists())

    def test_blank_name_rejected(self) -> None:
        res = self.client.post(
            "/api/v1/lands/",
            {"name": "   ", "geometry": _square()},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("name", res.json()["errors"])

    def test_unknown_land_returns_404(self) -> None:
        res = self.client.get(
            "/api/v1/lands/00000000-0000-0000-0000-000000000000/"
        )
        self.assertEqual(res.status_code, 404)
