"""Stock level classification, shared by every inventory-aware view."""
import enum


class StockLevel(str, enum.Enum):
    """Tri-state stock level."""
    CRITICAL = 'critical'
    LOW = 'low'
    HIGH = 'high'


def classify_stock(quantity, alert_threshold, critical_threshold) -> StockLevel:
    """
    Classify a quantity against its thresholds.

    The critical check runs first. Thresholds are not validated: with
    critical_threshold > alert_threshold the LOW state can never be reached.
    """
    if quantity <= critical_threshold:
        return StockLevel.CRITICAL
    if quantity <= alert_threshold:
        return StockLevel.LOW
    return StockLevel.HIGH


def thresholds_inverted(alert_threshold, critical_threshold) -> bool:
    """True when the critical threshold masks the low state."""
    return critical_threshold > alert_threshold
