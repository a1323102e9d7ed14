"""
Analytics Rebuild Pipeline

Joins successful orders to their buyer profiles, normalizes the profile
fields and upserts one ``analytics_orders`` row per order.

Pipeline:
1. Authorize the caller against the job token
2. Resolve the lower bound (explicit ``since``, stored watermark, or none)
3. Stream orders with their profile (left outer join)
4. Normalize city, state and birth date; pick display name and phone
5. Upsert in chunks, each chunk committed
6. Advance the watermark to the time the run started
"""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import structlog
from dateutil.parser import parse as dateutil_parse
from sqlalchemy import Select, and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from customer_analytics.config.settings import AnalyticsSettings
from customer_analytics.database.models import (
    AnalyticsOrder,
    AposDoc,
    DocType,
    OrderStatus,
)
from customer_analytics.database.repositories import upsert_rows
from customer_analytics.database.watermarks import WatermarkStore
from customer_analytics.errors import InvalidArgument, RebuildFailed, Unauthorized
from customer_analytics.transformation.normalizers import (
    NO_CITY,
    NO_STATE,
    coalesce,
    normalize_birth_date,
    normalize_location,
)

logger = structlog.get_logger(__name__)

ISO_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class RebuildMode(str, Enum):
    """Rebuild window selection"""
    INCREMENTAL = "incremental"
    FULL = "full"


@dataclass
class RebuildResult:
    """Result of a successful rebuild"""
    mode: RebuildMode
    since_applied: Optional[datetime]
    rows_written: int
    unparsed_birth_dates: int
    started_at: datetime
    completed_at: datetime

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "mode": self.mode.value,
            "since": self.since_applied.isoformat() if self.since_applied else None,
        }


def parse_since(value: str) -> datetime:
    """
    Parse an explicit lower bound.

    A bare ``YYYY-MM-DD`` means midnight UTC. ISO-8601 is tried next, then
    any other date/time form ``dateutil`` understands (for example
    ``Wed, 01 May 2024 10:00:00 GMT``). Offset-aware values are converted
    to naive UTC.

    Raises:
        InvalidArgument: If the value is not a valid date
    """
    text = value.strip()
    try:
        if ISO_DAY_PATTERN.match(text):
            return datetime.strptime(text, "%Y-%m-%d")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = dateutil_parse(text)
    except (ValueError, OverflowError) as e:
        raise InvalidArgument("Invalid since parameter.", cause=e) from e

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def build_record(row: Mapping[str, Any], updated_at: datetime) -> Dict[str, Any]:
    """Turn one joined order/profile row into an ``analytics_orders`` record."""
    birth = normalize_birth_date(coalesce(row["birth_date"], row["birthdate"]))

    return {
        "id": row["id"],
        "buyer_id": row["buyer_id"],
        "products_id": row["products_id"],
        "reservation_date": row["reservation_date"],
        "created_at": row["created_at"],
        "user_created_at": row["user_created_at"],
        "birth_date_normalized": birth.as_timestamp(),
        "user_city": row["city"],
        "user_state": row["state"],
        "user_city_norm": normalize_location(row["city"], NO_CITY),
        "user_state_norm": normalize_location(row["state"], NO_STATE),
        "user_name": coalesce(row["title"], row["username"]),
        "user_email": row["email"],
        "user_phone": coalesce(row["phone_number"], row["phone"]),
        "updated_at": updated_at,
    }


def source_query(since: Optional[datetime] = None) -> Select:
    """Successful orders left-joined to their buyer profile."""
    order = aliased(AposDoc, name="o")
    user = aliased(AposDoc, name="u")

    query = (
        select(
            order.id,
            order.buyer_id,
            order.products_id,
            order.reservation_date,
            order.created_at,
            user.created_at.label("user_created_at"),
            user.title,
            user.username,
            user.email,
            user.phone_number,
            user.phone,
            user.city,
            user.state,
            user.birth_date,
            user.birthdate,
        )
        .select_from(order)
        .outerjoin(
            user,
            and_(user.id == order.buyer_id, user.type == DocType.USER.value),
        )
        .where(
            order.type == DocType.ORDER.value,
            order.status == OrderStatus.SUCCESS.value,
        )
    )
    if since is not None:
        query = query.where(order.created_at >= since)
    return query


class RebuildPipeline:
    """
    Incremental rebuild of the analytics table.

    Re-running the same window converges to the same stored state, so a
    failed run can simply be retried.

    Example:
        pipeline = RebuildPipeline(session_factory, WatermarkStore(session_factory), job_token)
        result = await pipeline.rebuild(RebuildMode.INCREMENTAL, token=token)
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        watermarks: WatermarkStore,
        job_token: Optional[str],
        watermark_key: str = "analyticsOrders",
        chunk_size: int = 1000,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._session_factory = session_factory
        self.watermarks = watermarks
        self._job_token = job_token
        self.watermark_key = watermark_key
        self.chunk_size = chunk_size
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], AsyncSession],
        settings: AnalyticsSettings,
    ) -> "RebuildPipeline":
        """Pipeline wired to the configured token, watermark key and chunk size."""
        token = settings.job_token.get_secret_value() if settings.job_token else None
        return cls(
            session_factory,
            WatermarkStore(session_factory),
            token,
            watermark_key=settings.watermark_key,
            chunk_size=settings.upsert_chunk_size,
        )

    @property
    def job_token(self) -> Optional[str]:
        return self._job_token

    def _authorize(self, token: Optional[str]) -> None:
        if not self._job_token or token is None:
            raise Unauthorized("Unauthorized")
        if not secrets.compare_digest(token.encode(), self._job_token.encode()):
            raise Unauthorized("Unauthorized")

    async def _write_chunk(self, records: List[Dict[str, Any]]) -> int:
        async with self._session_factory() as session:
            written = await upsert_rows(session, AnalyticsOrder, records)
            await session.commit()
        return written

    async def _stream_rebuild(
        self,
        since: Optional[datetime],
        updated_at: datetime,
    ) -> Tuple[int, int]:
        """
        Stream the source read and upsert it one partition at a time.

        Only ``chunk_size`` source rows are held in memory. Each partition is
        written and committed on its own session while the read cursor stays
        open on another.

        Returns:
            (rows written, unparseable birth dates)
        """
        written = 0
        unparsed = 0
        async with self._session_factory() as session:
            result = await session.stream(source_query(since))
            async for partition in result.mappings().partitions(self.chunk_size):
                records = [build_record(row, updated_at) for row in partition]
                unparsed += sum(
                    1 for row, record in zip(partition, records)
                    if record["birth_date_normalized"] is None
                    and coalesce(row["birth_date"], row["birthdate"]) is not None
                )
                written += await self._write_chunk(records)
                logger.debug("Upserted chunk", rows=len(records), total=written)
        return written, unparsed

    async def rebuild(
        self,
        mode: Union[RebuildMode, str] = RebuildMode.INCREMENTAL,
        since: Optional[str] = None,
        token: Optional[str] = None,
    ) -> RebuildResult:
        """
        Run one rebuild.

        Args:
            mode: "incremental" or "full"
            since: Explicit lower bound for incremental mode
            token: Caller credential

        Returns:
            RebuildResult

        Raises:
            Unauthorized: Token missing, wrong, or no token configured
            InvalidArgument: Unknown mode or unparseable ``since``
            RebuildFailed: Store error; the watermark is left untouched
        """
        self._authorize(token)

        try:
            mode = RebuildMode(mode)
        except ValueError as e:
            raise InvalidArgument(f"Unknown rebuild mode: {mode}", cause=e) from e

        explicit_since = None
        if mode == RebuildMode.INCREMENTAL and since:
            explicit_since = parse_since(since)

        started_at = self._clock()

        try:
            since_applied = None
            if mode == RebuildMode.INCREMENTAL:
                since_applied = explicit_since or await self.watermarks.get(self.watermark_key)

            logger.info(
                "Starting analytics rebuild",
                mode=mode.value,
                since=since_applied.isoformat() if since_applied else None,
            )

            written, unparsed = await self._stream_rebuild(since_applied, started_at)
            await self.watermarks.set(self.watermark_key, started_at)
        except Exception as e:
            logger.error(
                "Analytics rebuild failed",
                mode=mode.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RebuildFailed("Analytics rebuild failed", cause=e) from e

        result = RebuildResult(
            mode=mode,
            since_applied=since_applied,
            rows_written=written,
            unparsed_birth_dates=unparsed,
            started_at=started_at,
            completed_at=self._clock(),
        )
        logger.info(
            "Analytics rebuild complete",
            mode=mode.value,
            rows_written=written,
            unparsed_birth_dates=unparsed,
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result


async def rebuild_analytics(
    pipeline: RebuildPipeline,
    mode: Union[RebuildMode, str] = RebuildMode.INCREMENTAL,
    since: Optional[str] = None,
    token: Optional[str] = None,
) -> Dict[str, Any]:
    """Run a rebuild and return ``{ok, mode, since}``."""
    result = await pipeline.rebuild(mode, since=since, token=token)
    return result.to_dict()
