"""
Medicines — Celery Tasks

Periodic tasks for listing lifecycle automation.

@file medicines/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('medshare')


@shared_task(name='medicines.expire_overdue_listings')
def expire_overdue_listings_task():
    """
    Daily task: set EXPIRED status on every listing past its expiry date.
    Registered with Celery Beat to run once per day at midnight.
    """
    from .services import InventoryLedger

    count = InventoryLedger.expire_overdue()
    logger.info('expire_overdue_listings_task completed: %d listings expired.', count)
    return {'expired_count': count}


@shared_task(name='medicines.notify_expiring_listings')
def notify_expiring_listings_task(days=None):
    """Daily task: warn donors whose listings expire within EXPIRY_WARNING_DAYS."""
    from .services import MedicineService

    sent = MedicineService.notify_expiring_listings(days=days)
    logger.info('notify_expiring_listings_task completed: %d donors notified.', sent)
    return {'notified_count': sent}
