"""
tasks/models.py -- Domain dataclass for tasks.

Pure data container; all persistence lives in tasks/store.py.

id is None before the record is written to the database.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Task:
    title: str
    details: str
    id: Optional[int] = None
