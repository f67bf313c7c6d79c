"""Rating aggregation for providers.

The mean is kept as a fixed-point running total plus a count. Each rating
is applied with one UPDATE statement, so concurrent ratings for the same
provider serialize on the row and none are lost.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.core.errors import INVALID_SCORE, PROVIDER_NOT_FOUND, NotFoundError, ValidationError
from medislot.core.logging import audit_logger
from medislot.db.session import unit_of_work
from medislot.models.provider import Provider
from medislot.models.rating import RatingEntry

MIN_SCORE = Decimal("0")
MAX_SCORE = Decimal("5")
SCORE_QUANTUM = Decimal("0.0001")


@dataclass(frozen=True)
class RatingSummary:
    """Provider rating after an update."""

    rating: Decimal
    rating_count: int


def normalize_score(score: int | float | Decimal | str) -> Decimal:
    """Validate a score and convert it to fixed point.

    Raises:
        ValidationError: ``InvalidScore`` if not a finite number in [0, 5]
    """
    if isinstance(score, bool):
        raise ValidationError("Score must be a number", code=INVALID_SCORE)
    if isinstance(score, float) and not math.isfinite(score):
        raise ValidationError("Score must be finite", code=INVALID_SCORE)

    try:
        value = Decimal(str(score))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid score: {score!r}", code=INVALID_SCORE)

    if not value.is_finite() or not MIN_SCORE <= value <= MAX_SCORE:
        raise ValidationError(
            f"Score must be between {MIN_SCORE} and {MAX_SCORE}",
            code=INVALID_SCORE,
        )
    return value.quantize(SCORE_QUANTUM)


class RatingService:
    """Service for recording provider ratings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def rate(
        self,
        provider_id: str,
        score: int | float | Decimal | str,
        requester_id: str | None = None,
        comment: str | None = None,
    ) -> RatingSummary:
        """Add a score to a provider's running mean.

        Equivalent to ``new_mean = (mean * count + score) / (count + 1)``
        computed exactly from the stored total.

        Args:
            provider_id: Provider being rated
            score: Score between 0 and 5
            requester_id: Requester leaving the rating
            comment: Optional free-text comment

        Returns:
            RatingSummary with the new mean and count

        Raises:
            ValidationError: ``InvalidScore``
            NotFoundError: ``ProviderNotFound``
        """
        value = normalize_score(score)

        async with unit_of_work(self.session):
            result = await self.session.execute(
                update(Provider)
                .where(Provider.id == provider_id)
                .values(
                    rating_total=Provider.rating_total + value,
                    rating_count=Provider.rating_count + 1,
                )
                .returning(Provider.rating_total, Provider.rating_count)
            )
            row = result.one_or_none()
            if row is None:
                raise NotFoundError(
                    f"Provider {provider_id} not found",
                    code=PROVIDER_NOT_FOUND,
                )

            self.session.add(
                RatingEntry(
                    provider_id=provider_id,
                    requester_id=requester_id,
                    score=value,
                    comment=comment,
                )
            )

        total, count = row
        summary = RatingSummary(rating=Decimal(str(total)) / count, rating_count=count)

        audit_logger.log(
            action="provider.rated",
            actor_type="requester",
            actor_id=requester_id,
            entity_type="provider",
            entity_id=provider_id,
            metadata={"score": str(value), "rating_count": count},
        )
        return summary
