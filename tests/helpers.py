from datetime import datetime, timedelta

from app.core.security import create_access_token
from app.models.enums import Role


def auth_headers(account_id, role: Role = Role.user) -> dict:
    token = create_access_token({"sub": str(account_id), "role": role.value})
    return {"Authorization": f"Bearer {token}"}


def booking(vehicle_id, start: datetime | None = None, days: int = 2, price: float = 200, **extra) -> dict:
    start = start or datetime(2030, 1, 1, 10, 0)
    payload = {
        "vehicle_id": str(vehicle_id),
        "start_date": start.isoformat(),
        "return_date": (start + timedelta(days=days)).isoformat(),
        "price": price,
    }
    payload.update(extra)
    return payload


async def book(client, headers, vehicle_id, **kwargs) -> dict:
    response = await client.post("/api/v1/rentals/", json=booking(vehicle_id, **kwargs), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def confirm(client, headers, rental_id) -> dict:
    response = await client.put(f"/api/v1/rentals/{rental_id}/confirm", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


async def complete(client, headers, rental_id) -> dict:
    response = await client.put(f"/api/v1/rentals/{rental_id}/complete", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


async def add_credits(client, headers, amount) -> dict:
    response = await client.post("/api/v1/credits/add", json={"amount": amount}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()
