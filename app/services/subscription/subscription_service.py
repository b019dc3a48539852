# ============================================================================
# app/services/subscription/subscription_service.py
# Subscription lifecycle and the access gate for business owners
# ============================================================================
"""
States: TRIAL -> ACTIVE (payment), TRIAL/ACTIVE -> EXPIRED (time),
EXPIRED -> ACTIVE (payment).

Cancelling keeps the subscription ACTIVE (or TRIAL) with
cancel_at_period_end set; access continues until the period boundary,
after which the next sync moves it to EXPIRED. A stored CANCELLED status
from older rows is still understood: denied, and reactivatable.

Expiry is applied lazily: sync_subscription_status() is called on every
read path, so the first request after a boundary performs the write.
"""
import math
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.context import RequestContext
from app.core.exceptions import AccessDeniedError, ConflictError, InvalidStateError, NotFoundError
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.schemas.subscription import AccessDecision
from app.services.business.business_service import BusinessService
from app.utils.time_utils import add_months, utcnow

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Service layer for subscription operations."""

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    @staticmethod
    def get_plans(db: Session) -> List[SubscriptionPlan]:
        return db.query(SubscriptionPlan).filter(
            SubscriptionPlan.is_active == True  # noqa: E712
        ).order_by(SubscriptionPlan.price.asc()).all()

    @staticmethod
    def get_plan_by_id(db: Session, plan_id: UUID) -> SubscriptionPlan:
        plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if not plan:
            raise NotFoundError("Subscription plan not found")
        return plan

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def create_subscription(
            db: Session,
            business_id: UUID,
            plan_id: UUID,
            now: Optional[datetime] = None
    ) -> Subscription:
        """Start the one subscription of a business with a trial window"""
        now = now or utcnow()

        BusinessService.get_business(db, business_id)

        existing = db.query(Subscription).filter(Subscription.business_id == business_id).first()
        if existing:
            raise ConflictError("This business already has a subscription")

        plan = SubscriptionService.get_plan_by_id(db, plan_id)
        trial_end = now + timedelta(days=get_settings().TRIAL_DAYS)

        subscription = Subscription(
            business_id=business_id,
            plan_id=plan.id,
            status=SubscriptionStatus.TRIAL,
            current_period_start=now,
            current_period_end=trial_end,
            trial_ends_at=trial_end,
            cancel_at_period_end=False,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)

        logger.info(f"Created trial subscription for business {business_id} ending {trial_end.isoformat()}")
        return subscription

    @staticmethod
    def sync_subscription_status(
            db: Session,
            business_id: UUID,
            now: Optional[datetime] = None
    ) -> Subscription:
        """
        Apply any time-based transition that is due and persist it.

        Raises:
            NotFoundError: the business has no subscription
        """
        now = now or utcnow()

        subscription = db.query(Subscription).filter(Subscription.business_id == business_id).first()
        if not subscription:
            raise NotFoundError("No subscription found for this business")

        expired = SubscriptionService._is_past_window(subscription, now)
        if expired:
            previous = subscription.status
            subscription.status = SubscriptionStatus.EXPIRED
            subscription.trial_ends_at = None
            subscription.cancel_at_period_end = False
            db.commit()
            db.refresh(subscription)

            logger.info(f"Subscription of business {business_id} expired lazily ({previous.value} -> EXPIRED)")

        return subscription

    @staticmethod
    def get_current_subscription(
            db: Session,
            business_id: UUID,
            now: Optional[datetime] = None
    ) -> Subscription:
        return SubscriptionService.sync_subscription_status(db, business_id, now)

    @staticmethod
    def change_plan(
            db: Session,
            business_id: UUID,
            plan_id: UUID,
            now: Optional[datetime] = None
    ) -> Subscription:
        subscription = SubscriptionService.sync_subscription_status(db, business_id, now)

        if subscription.status == SubscriptionStatus.TRIAL:
            raise InvalidStateError("The plan cannot be changed during the trial period")
        if subscription.status == SubscriptionStatus.EXPIRED:
            raise InvalidStateError("The subscription has expired, renew it before changing plans")

        plan = SubscriptionService.get_plan_by_id(db, plan_id)
        subscription.plan_id = plan.id
        db.commit()
        db.refresh(subscription)

        logger.info(f"Business {business_id} switched to plan {plan.name}")
        return subscription

    @staticmethod
    def cancel_subscription(
            db: Session,
            business_id: UUID,
            now: Optional[datetime] = None
    ) -> Subscription:
        """Stop renewal; access runs until the end of the current period"""
        subscription = SubscriptionService.sync_subscription_status(db, business_id, now)

        if subscription.status == SubscriptionStatus.EXPIRED:
            raise InvalidStateError("The subscription has already expired")
        if subscription.cancel_at_period_end or subscription.status == SubscriptionStatus.CANCELLED:
            raise InvalidStateError("The subscription is already cancelled")

        subscription.cancel_at_period_end = True
        db.commit()
        db.refresh(subscription)

        logger.info(
            f"Subscription of business {business_id} cancelled, ends "
            f"{subscription.current_period_end.isoformat()}"
        )
        return subscription

    @staticmethod
    def reactivate_subscription(
            db: Session,
            business_id: UUID,
            now: Optional[datetime] = None
    ) -> Subscription:
        subscription = SubscriptionService.sync_subscription_status(db, business_id, now)

        if subscription.status == SubscriptionStatus.EXPIRED:
            raise InvalidStateError("Expired subscriptions are renewed through a new payment")
        if not subscription.cancel_at_period_end and subscription.status != SubscriptionStatus.CANCELLED:
            raise InvalidStateError("Only cancelled subscriptions can be reactivated")

        subscription.cancel_at_period_end = False
        if subscription.status == SubscriptionStatus.CANCELLED:
            subscription.status = SubscriptionStatus.ACTIVE
        db.commit()
        db.refresh(subscription)

        logger.info(f"Subscription of business {business_id} reactivated")
        return subscription

    @staticmethod
    def activate_after_payment(
            db: Session,
            business_id: UUID,
            external_subscription_id: str,
            now: Optional[datetime] = None
    ) -> Subscription:
        """
        Billing collaborator confirmed a payment: open a fresh paid period.
        A repeated callback for the period already opened changes nothing.
        """
        now = now or utcnow()
        subscription = SubscriptionService.sync_subscription_status(db, business_id, now)

        if (subscription.status == SubscriptionStatus.ACTIVE
                and subscription.external_subscription_id == external_subscription_id):
            logger.info(
                f"Activation callback {external_subscription_id} for business {business_id} "
                f"already applied, ignoring"
            )
            return subscription

        previous = subscription.status
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.external_subscription_id = external_subscription_id
        subscription.current_period_start = now
        subscription.current_period_end = add_months(now, get_settings().SUBSCRIPTION_PERIOD_MONTHS)
        subscription.trial_ends_at = None
        subscription.cancel_at_period_end = False
        db.commit()
        db.refresh(subscription)

        logger.info(
            f"Subscription of business {business_id} activated after payment "
            f"({previous.value} -> ACTIVE until {subscription.current_period_end.isoformat()})"
        )
        return subscription

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    @staticmethod
    def is_subscription_active(
            db: Session,
            business_id: UUID,
            now: Optional[datetime] = None
    ) -> bool:
        try:
            subscription = SubscriptionService.sync_subscription_status(db, business_id, now)
        except NotFoundError:
            return False
        return subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL)

    @staticmethod
    def get_trial_days_remaining(
            db: Session,
            business_id: UUID,
            now: Optional[datetime] = None
    ) -> Optional[int]:
        now = now or utcnow()
        try:
            subscription = SubscriptionService.sync_subscription_status(db, business_id, now)
        except NotFoundError:
            return None

        if subscription.status != SubscriptionStatus.TRIAL or not subscription.trial_ends_at:
            return None

        remaining = (subscription.trial_ends_at - now).total_seconds() / 86400
        return max(math.ceil(remaining), 0)

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    @staticmethod
    def check_access(
            db: Session,
            ctx: RequestContext,
            now: Optional[datetime] = None
    ) -> AccessDecision:
        """
        Allow anyone who is not a professional. Professionals need a TRIAL
        or ACTIVE subscription whose window has not passed; a stale status
        is rewritten to EXPIRED as part of the check.
        """
        if not ctx.is_professional:
            return AccessDecision.allow()

        if ctx.business_id is None:
            return AccessDecision.deny(
                AccessDeniedError.NO_SUBSCRIPTION,
                "No business found. Please complete your profile."
            )

        try:
            subscription = SubscriptionService.sync_subscription_status(db, ctx.business_id, now)
        except NotFoundError:
            return AccessDecision.deny(AccessDeniedError.NO_SUBSCRIPTION, "No subscription found.")

        if subscription.status in (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE):
            return AccessDecision.allow()

        if subscription.status == SubscriptionStatus.CANCELLED:
            return AccessDecision.deny(
                AccessDeniedError.CANCELLED,
                "Your subscription was cancelled. Reactivate it to continue."
            )

        # EXPIRED: a subscription that was never paid for ran out of trial
        if subscription.external_subscription_id is None:
            return AccessDecision.deny(
                AccessDeniedError.TRIAL_EXPIRED,
                "Your trial period has expired. Please subscribe to continue."
            )
        return AccessDecision.deny(
            AccessDeniedError.PERIOD_EXPIRED,
            "Your subscription has expired. Please renew to continue."
        )

    @staticmethod
    def enforce_access(
            db: Session,
            ctx: RequestContext,
            now: Optional[datetime] = None
    ) -> None:
        decision = SubscriptionService.check_access(db, ctx, now)
        if not decision.allowed:
            logger.info(f"Access denied for business {ctx.business_id}: {decision.reason}")
            raise AccessDeniedError(decision.message, reason=decision.reason)

    @staticmethod
    def _is_past_window(subscription: Subscription, now: datetime) -> bool:
        if subscription.status == SubscriptionStatus.TRIAL:
            end = subscription.trial_ends_at or subscription.current_period_end
            return now > end
        if subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED):
            return now > subscription.current_period_end
        return False
