"""Generic response schemas"""

from pydantic import BaseModel
from typing import List, Dict, Any
from datetime import datetime


class HealthResponse(BaseModel):
    """Health check response schema"""
    status: str
    timestamp: datetime
    dependencies: dict
    providers: List[Dict[str, Any]] = []
