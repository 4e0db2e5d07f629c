from __future__ import annotations

import logging

from employee_birthdays.models import Employee
from employee_birthdays.storage import EmployeeStore, StorageError

LOGGER = logging.getLogger(__name__)


def should_notify(employee: Employee, tier: int) -> bool:
    return employee.last_notified_tier != tier


def record_notified(store: EmployeeStore, employee: Employee, tier: int) -> bool:
    """Persist ``tier`` as the last tier sent for ``employee``.

    Runs after delivery, so a failure here is only logged; the next check
    may send the same tier again.
    """
    try:
        store.update_last_notified_tier(employee.employee_id, tier)
    except StorageError:
        LOGGER.exception(
            "Could not record tier %s for employee %s (%s)",
            tier,
            employee.employee_id,
            employee.name,
        )
        return False
    return True
