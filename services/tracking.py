from typing import List, Optional
import logging

from models.delivery import DeliveryStatus
from models.tracking import TrackingUpdate
from services.delivery_repository import DeliveryRepository

logger = logging.getLogger(__name__)

# Display vocabulary shown on the tracking page
TRACKING_LABELS = {
    DeliveryStatus.PENDING: "Dispatched",
    DeliveryStatus.ACCEPTED: "Dispatched",
    DeliveryStatus.IN_TRANSIT: "In Transit",
    DeliveryStatus.DELIVERED: "Delivered",
}

def tracking_label_for(status: DeliveryStatus) -> str:
    """Map a delivery status to its tracking label.

    Statuses without a display label (rejected, cancelled) keep their raw
    value so the history still shows how the delivery ended.
    """
    status = DeliveryStatus(status)
    return TRACKING_LABELS.get(status, status.value)

class TrackingRecorder:
    def __init__(self, repository: DeliveryRepository):
        self.repository = repository

    def record(
        self,
        delivery_id: str,
        status: DeliveryStatus,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None
    ) -> TrackingUpdate:
        """Append one history entry for a status change."""
        label = tracking_label_for(status)
        entry = self.repository.insert_tracking_update(
            delivery_id=delivery_id,
            status_update=label,
            latitude=latitude,
            longitude=longitude
        )
        logger.info(f"Tracking update '{label}' recorded for delivery {delivery_id}")
        return entry

    def list_updates(self, delivery_id: str) -> List[TrackingUpdate]:
        """History of a delivery, newest first."""
        return self.repository.list_tracking_updates(delivery_id)
