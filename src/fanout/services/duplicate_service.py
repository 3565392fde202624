"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/duplicate_service.py
Keeper selection and removal bookkeeping for duplicate groups.
"""
import logging
import os
import time
from typing import Callable, List, Tuple

from fanout.core.models import DuplicateGroup, FailureKind, JobResult, WorkItem

logger = logging.getLogger(__name__)


class DuplicateService:
    @staticmethod
    def remove_redundant(
        groups: List[DuplicateGroup],
        remove: Callable[[str], None],
    ) -> Tuple[List[WorkItem], List[JobResult]]:
        """
        Removes every non-keeper, one file at a time.

        A failing removal is recorded and the pass continues. A group whose
        keeper disappeared since enumeration is skipped entirely, so the last
        copy of some content is never removed.

        Returns:
            - List of removed items
            - List of removal failures as JobResults
        """
        removed = []
        failures = []
        for group in groups:
            if not group.is_duplicate():
                continue
            if not os.path.exists(group.keeper.value):
                logger.warning(f"Keeper vanished, leaving group untouched: {group.keeper.value}")
                continue

            for item in group.redundant:
                start = time.monotonic()
                try:
                    remove(item.value)
                    removed.append(item)
                    logger.debug(f"Removed duplicate {item.value} (kept {group.keeper.value})")
                except (OSError, RuntimeError) as e:
                    logger.warning(f"Failed to remove {item.value}: {e}")
                    failures.append(JobResult(
                        item=item,
                        exit_status=None,
                        stderr=str(e).encode("utf-8", errors="replace"),
                        duration=time.monotonic() - start,
                        failure=FailureKind.REMOVAL_FAILURE,
                    ))
        return removed, failures
