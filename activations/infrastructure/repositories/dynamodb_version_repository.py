"""
DynamoDB implementation of VersionRepository port.

Reads ``VERSION#mouse`` / ``CURRENT``, written by the release pipeline.
"""
import logging

from asgiref.sync import sync_to_async
from botocore.exceptions import BotoCoreError, ClientError

from activations.domain.version import MARKETPLACE_URL, NO_VERSION, VersionInfo
from activations.ports.version_repository import VersionRepository
from core.infrastructure.dynamodb import get_item

logger = logging.getLogger(__name__)


class DynamoDBVersionRepository(VersionRepository):
    """DynamoDB adapter for the version advertisement."""

    def __init__(self, product: str = "mouse"):
        self.product = product

    @sync_to_async
    def get_current(self) -> VersionInfo:
        try:
            item = get_item(f"VERSION#{self.product}", "CURRENT")
        except (ClientError, BotoCoreError) as e:
            logger.warning("Version config lookup failed", extra={"error": str(e)})
            return NO_VERSION
        if not item:
            return NO_VERSION
        update_url = item.get("updateUrl")
        if isinstance(update_url, dict):
            update_url = update_url.get("marketplace")
        if not update_url and item.get("latestVersion"):
            update_url = MARKETPLACE_URL
        return VersionInfo(
            latest_version=item.get("latestVersion"),
            release_notes_url=item.get("releaseNotesUrl"),
            update_url=update_url,
            ready_version=item.get("readyVersion"),
            ready_release_notes_url=item.get("readyReleaseNotesUrl"),
            ready_update_url=item.get("readyUpdateUrl"),
            ready_updated_at=item.get("readyUpdatedAt"),
        )
