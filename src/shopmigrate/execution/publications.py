"""
Publication (sales channel) sync.

Publish and unpublish are not idempotent toggles, so the sync resets the
resource first: it is unpublished from every destination publication, then
published to exactly the publications whose name matches a channel the
source recorded as published. Repeated runs converge to the source state
whatever the destination started with.
"""

from dataclasses import dataclass, field

import structlog

from ..core.index import DestinationIndex
from ..models.records import PublicationEntry
from ..shopify.client import ShopifyClient
from ..shopify.queries import Mutations
from ..utils.exceptions import ShopifyAPIError, ValidationError

logger = structlog.get_logger(__name__)


@dataclass
class PublicationResult:
    """Outcome of syncing one resource."""

    published: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def synced(self) -> bool:
        return bool(self.published) and not self.errors


class PublicationSync:
    """Resets and applies sales channel publications for one resource at a time."""

    def __init__(self, client: ShopifyClient, index: DestinationIndex):
        self.client = client
        self.index = index

    def target_publications(self, entries: list[PublicationEntry]) -> list[str]:
        """Destination publication ids for the source channels marked published."""
        targets = []
        for entry in entries:
            if not entry.isPublished or not entry.name:
                continue
            pub_id = self.index.publications.get(entry.name)
            if pub_id is None:
                logger.debug("Publication not in destination", publication=entry.name)
                continue
            if pub_id not in targets:
                targets.append(pub_id)
        return targets

    async def sync(
        self, resource_id: str, entries: list[PublicationEntry], key: str
    ) -> PublicationResult:
        """
        Converge a resource's publications to the source state.

        Nothing is changed when no published source channel exists in the
        destination, so a missing channel never unpublishes a resource.

        Args:
            resource_id: Destination GID of the product or collection
            entries: Source publication entries
            key: Natural key, for logging
        """
        result = PublicationResult()
        targets = self.target_publications(entries)
        if not targets:
            logger.debug("No matching publications", key=key)
            return result

        for pub_id in self.index.publications.values():
            try:
                await self.client.mutate(
                    Mutations.PUBLISHABLE_UNPUBLISH,
                    {"id": resource_id, "input": [{"publicationId": pub_id}]},
                    "publishableUnpublish",
                )
            except (ValidationError, ShopifyAPIError) as e:
                # Unpublishing from a channel the resource is not on is not fatal
                logger.debug("Unpublish failed", key=key, publication=pub_id, error=str(e))

        try:
            await self.client.mutate(
                Mutations.PUBLISHABLE_PUBLISH,
                {"id": resource_id, "input": [{"publicationId": p} for p in targets]},
                "publishablePublish",
            )
        except (ValidationError, ShopifyAPIError) as e:
            result.errors.append(str(e))
            logger.warning("Publish failed", key=key, error=str(e))
            return result

        result.published = targets
        logger.debug("Synced publications", key=key, publications=len(targets))
        return result
