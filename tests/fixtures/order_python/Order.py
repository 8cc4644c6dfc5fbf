from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Optional

from models.OrderShippingAddress import OrderShippingAddress
from models.OrderItems import OrderItems


@dataclasses.dataclass(kw_only=True)
class Order:
    id: int = 0
    customerName: str = ""
    isPaid: bool = False
    total: float = 0.0
    coupon: Optional[str] = None
    tags: List[Any] = dataclasses.field(default_factory=list)
    lineIds: List[int] = dataclasses.field(default_factory=list)
    shippingAddress: OrderShippingAddress
    items: List[OrderItems] = dataclasses.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_name": self.customerName,
            "is-paid": self.isPaid,
            "total": self.total,
            "coupon": self.coupon,
            "tags": list(self.tags),
            "line_ids": list(self.lineIds),
            "shipping_address": self.shippingAddress.to_dict(),
            "items": [item.to_dict() for item in self.items],
        }
