"""
Owner listing endpoints on top of RentalApiClient.
Payloads are passed through as the server returns them.
"""

from typing import Any

from rental_hub.client.http_client import RentalApiClient
from rental_hub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

OWNER_REAL_ESTATE_PATH = "/owner/real-estate"


class OwnerPropertyClient:
    """Property management calls available to a logged-in owner."""

    def __init__(self, api: RentalApiClient):
        self.api = api

    async def post_real_estate(self, form_data: dict[str, Any]) -> dict:
        """Create a listing. Response carries ``realEstate``."""
        data = await self.api.post(OWNER_REAL_ESTATE_PATH, json=form_data)
        logger.info("Property posted")
        return data

    async def get_personal_real_estate(self, page: int = 1) -> dict:
        """One page of the owner's listings: ``realEstates`` and ``numberOfPages``."""
        return await self.api.get(OWNER_REAL_ESTATE_PATH, params={"page": page})

    async def get_real_estate_detail(self, slug: str) -> dict:
        return await self.api.get(f"{OWNER_REAL_ESTATE_PATH}/{slug}")

    async def update_real_estate_detail(self, slug: str, form_values: dict[str, Any]) -> dict:
        """Patch a listing. Response carries ``updatedRealEstate``."""
        data = await self.api.patch(f"{OWNER_REAL_ESTATE_PATH}/update/{slug}", json=form_values)
        logger.info("Property updated", slug=slug)
        return data

    async def delete_property(self, slug: str) -> dict:
        data = await self.api.delete(f"{OWNER_REAL_ESTATE_PATH}/delete/{slug}")
        logger.info("Property deleted", slug=slug)
        return data
