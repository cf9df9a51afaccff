"""Removes all guest data once a migration pass has completed."""

import logging

from shiftwise.services.local_storage_service import ALL_LOCAL_KEYS, LocalStorageService

logger = logging.getLogger(__name__)


class LocalStateCleaner:
    """Irreversible: skipped records are dropped along with everything else."""

    async def clear_all(self, local_storage: LocalStorageService) -> None:
        await local_storage.clear_all_local_data()
        logger.info(f"Removed local keys: {', '.join(ALL_LOCAL_KEYS)}")


local_state_cleaner = LocalStateCleaner()
