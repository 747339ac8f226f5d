# merchcore/api/v1/schemas/interactions.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

class TrackInteractionIn(BaseModel):
    product_id: int
    user_id: str = Field(min_length=1)
    type: str                                   # validated by the service (422 with allowed types)
    metadata: Optional[Dict[str, Any]] = None   # {category, price} feeds the taste profile on views

class BulkInteractionItem(BaseModel):
    product_id: int
    user_id: str = Field(min_length=1)
    type: str
    timestamp: Optional[datetime] = None        # backfills may carry their own time

class BulkInteractionsIn(BaseModel):
    interactions: List[BulkInteractionItem] = Field(min_length=1)
