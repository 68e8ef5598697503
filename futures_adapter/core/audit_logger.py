"""
Audit trail for every exchange-mutating call made by the adapter.

Events are appended in JSON Lines format, one file per day, so the history
of orders, cancellations and leverage changes can be replayed with jq or
grep independently of the application log.
"""
import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class AuditEventType(Enum):
    """Types of audit events that can be logged."""
    # Order events
    ORDER_PLACED = "order_placed"
    ORDER_REJECTED = "order_rejected"
    TRIGGER_ORDER_PLACED = "trigger_order_placed"
    ORDERS_CANCELLED = "orders_cancelled"

    # Account configuration events
    LEVERAGE_SET = "leverage_set"
    MARGIN_MODE_SET = "margin_mode_set"

    # Local rejections (never reached the exchange)
    VALIDATION_REJECTED = "validation_rejected"

    # Error events
    API_ERROR = "api_error"


class AuditLogger:
    """
    Structured audit logger for exchange operations.

    Example log entry:
        {
            "timestamp": "2026-10-19T10:30:45.123456",
            "event_type": "order_placed",
            "operation": "open_long",
            "symbol": "BTC_USDT",
            "order_data": {"contract": "BTC_USDT", "size": 20, "tif": "ioc"},
            "response": {"order_id": "12345", "status": "finished"}
        }
    """

    def __init__(self, log_dir: str = "logs/audit"):
        """
        Args:
            log_dir: Directory for audit files. Relative paths resolve against
                the project root.
        """
        project_root = Path(__file__).resolve().parent.parent.parent

        self.log_dir = Path(log_dir)
        if not self.log_dir.is_absolute():
            self.log_dir = project_root / self.log_dir

        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"audit_{datetime.now().strftime('%Y%m%d')}.jsonl"

        # Unique logger per instance so tests with separate dirs don't collide
        self.logger = logging.getLogger(f"audit_{id(self)}")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        handler = logging.FileHandler(self.log_file)
        handler.setFormatter(logging.Formatter('%(message)s'))
        self.logger.addHandler(handler)

    def log_event(
        self,
        event_type: AuditEventType,
        operation: str,
        symbol: Optional[str] = None,
        order_data: Optional[Dict[str, Any]] = None,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[Dict[str, Any]] = None,
        additional_data: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Append one audit event.

        Args:
            event_type: Type of audit event
            operation: Adapter operation (e.g. "open_long", "set_leverage")
            symbol: Exchange symbol if applicable
            order_data: Payload sent to the exchange
            response: Normalized exchange response
            error: Error details
            additional_data: Any additional context
        """
        event = {
            'timestamp': datetime.now().isoformat(),
            'event_type': event_type.value,
            'operation': operation,
        }

        if symbol:
            event['symbol'] = symbol
        if order_data:
            event['order_data'] = order_data
        if response:
            event['response'] = response
        if error:
            event['error'] = error
        if additional_data:
            event['additional_data'] = additional_data

        self.logger.info(json.dumps(event, default=str))

    def log_order_placed(
        self,
        operation: str,
        symbol: str,
        order_data: Dict[str, Any],
        response: Dict[str, Any],
        conditional: bool = False
    ) -> None:
        event_type = (
            AuditEventType.TRIGGER_ORDER_PLACED if conditional
            else AuditEventType.ORDER_PLACED
        )
        self.log_event(
            event_type=event_type,
            operation=operation,
            symbol=symbol,
            order_data=order_data,
            response=response
        )

    def log_order_rejected(
        self,
        operation: str,
        symbol: str,
        order_data: Dict[str, Any],
        error: Exception
    ) -> None:
        self.log_event(
            event_type=AuditEventType.ORDER_REJECTED,
            operation=operation,
            symbol=symbol,
            order_data=order_data,
            error={'type': type(error).__name__, 'message': str(error)}
        )

    def log_validation_rejected(self, operation: str, symbol: str, error: Exception) -> None:
        """Log an order refused locally (size, precision or notional guard)."""
        self.log_event(
            event_type=AuditEventType.VALIDATION_REJECTED,
            operation=operation,
            symbol=symbol,
            error={'type': type(error).__name__, 'message': str(error)}
        )

    def log_cancellation(
        self,
        operation: str,
        symbol: str,
        standing_cancelled: int,
        triggers_cancelled: int,
        errors: Optional[list] = None
    ) -> None:
        self.log_event(
            event_type=AuditEventType.ORDERS_CANCELLED,
            operation=operation,
            symbol=symbol,
            response={
                'standing_cancelled': standing_cancelled,
                'triggers_cancelled': triggers_cancelled,
            },
            additional_data={'errors': errors} if errors else None
        )
