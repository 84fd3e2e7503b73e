from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dateutil import parser as dt_parser


@dataclass(frozen=True)
class Bookmark:
    id: str
    user_id: int
    title: str
    url: str
    created_at: datetime

    @classmethod
    def from_dict(cls, row: dict) -> "Bookmark":
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = dt_parser.isoparse(created_at)
        return cls(
            id=str(row["id"]),
            user_id=int(row["user_id"]),
            title=row.get("title") or "",
            url=row.get("url") or "",
            created_at=created_at,
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Identity:
    id: int
    username: str

    @classmethod
    def from_dict(cls, row: dict) -> "Identity":
        return cls(id=int(row["id"]), username=row.get("username") or "")
