from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .database.connection import DBConfig
from .database.gateway import PersistenceGateway
from .retention.job import RetentionJob
from .retention.mysql_retention_repository import MySQLRetentionRepository
from .roster.mysql_roster_repository import MySQLRosterRepository
from .roster.service import RosterService
from .storage.photo_storage import PhotoStorage
from .visits.mysql_visitor_repository import MySQLVisitorRepository
from .visits.service import VisitService


@dataclass(frozen=True)
class Container:
    gateway: Optional[PersistenceGateway]
    photos: PhotoStorage

    visit_service: VisitService
    roster_service: RosterService
    retention_job: RetentionJob


def build_container(
    *,
    db_config: dict,
    upload_dir: str | Path,
    pool_size: int = 10,
    gateway: Optional[PersistenceGateway] = None,
) -> Container:
    """Wire the gateway, repositories and services.

    The gateway is connected here; a connection failure propagates and stops startup.
    """

    if gateway is None:
        gateway = PersistenceGateway(DBConfig.from_mapping(db_config, pool_size=pool_size))
    if not gateway.initialized:
        gateway.connect()

    photos = PhotoStorage(upload_dir)

    visitors_repo = MySQLVisitorRepository(gateway)
    roster_repo = MySQLRosterRepository(gateway)
    retention_repo = MySQLRetentionRepository(gateway)

    visit_service = VisitService(visitors_repo, photos=photos, audit=gateway)
    roster_service = RosterService(roster_repo)
    retention_job = RetentionJob(retention_repo, gateway)

    return Container(
        gateway=gateway,
        photos=photos,
        visit_service=visit_service,
        roster_service=roster_service,
        retention_job=retention_job,
    )
