#!/usr/bin/env python3
"""
Script to create a professional, their business, services, weekly hours
and the trial subscription every new business starts with
Usage: python -m app.scripts.create_business owner@example.com "Studio Name"
"""
import argparse
import re
import sys
from decimal import Decimal

from sqlalchemy.orm import Session

from app.config.database import SessionLocal
from app.models.business import Business, WorkingHours
from app.models.service import Service
from app.models.subscription import SubscriptionPlan
from app.models.user import User, UserRole
from app.services.subscription.subscription_service import SubscriptionService

DEFAULT_PLANS = [
    {"name": "Basic", "price": Decimal("9.99"), "features": ["online booking", "1 calendar"]},
    {"name": "Pro", "price": Decimal("24.99"), "features": ["online booking", "payments", "webhooks"]},
]

# 0 = Sunday ... 6 = Saturday; Sunday closed
DEFAULT_HOURS = [
    {"day_of_week": 1, "start_time": "09:00", "end_time": "18:00"},
    {"day_of_week": 2, "start_time": "09:00", "end_time": "18:00"},
    {"day_of_week": 3, "start_time": "09:00", "end_time": "18:00"},
    {"day_of_week": 4, "start_time": "09:00", "end_time": "18:00"},
    {"day_of_week": 5, "start_time": "09:00", "end_time": "18:00"},
    {"day_of_week": 6, "start_time": "10:00", "end_time": "14:00"},
]

DEFAULT_SERVICES = [
    {"name": "Haircut", "price": Decimal("20.00"), "duration_minutes": 30},
    {"name": "Color", "price": Decimal("55.00"), "duration_minutes": 90},
]


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _default_plan(db: Session) -> SubscriptionPlan:
    plans = SubscriptionService.get_plans(db)
    if plans:
        return plans[0]

    for plan_data in DEFAULT_PLANS:
        db.add(SubscriptionPlan(**plan_data))
    db.commit()
    print(f"✅ Created {len(DEFAULT_PLANS)} subscription plans")

    return SubscriptionService.get_plans(db)[0]


def create_business(email: str, name: str, password: str) -> str:
    """Create the owner, business, hours and services, then start the trial"""
    db: Session = SessionLocal()

    try:
        owner = User(
            email=email,
            hashed_password=User.hash_password(password),
            full_name=name,
            role=UserRole.PROFESSIONAL,
        )
        db.add(owner)
        db.flush()

        business = Business(owner_id=owner.id, name=name, slug=_slugify(name))
        db.add(business)
        db.flush()

        for hours_data in DEFAULT_HOURS:
            db.add(WorkingHours(business_id=business.id, **hours_data))

        for order, service_data in enumerate(DEFAULT_SERVICES):
            db.add(Service(business_id=business.id, display_order=order, **service_data))

        db.commit()

        plan = _default_plan(db)
        subscription = SubscriptionService.create_subscription(db, business.id, plan.id)

        print("\n" + "=" * 60)
        print("BUSINESS CREATED SUCCESSFULLY!")
        print("=" * 60)
        print(f"\nBusiness ID: {business.id}")
        print(f"Name: {business.name} ({business.slug})")
        print(f"Owner: {owner.email}")
        print(f"Plan: {plan.name}, trial until {subscription.trial_ends_at:%Y-%m-%d %H:%M}")
        print("\nServices:")
        for service_data in DEFAULT_SERVICES:
            print(f"  - {service_data['name']} ({service_data['duration_minutes']}m)")
        print("\nWorking hours:")
        days = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
        open_days = {h["day_of_week"]: h for h in DEFAULT_HOURS}
        for day, day_name in enumerate(days):
            hours = open_days.get(day)
            if hours:
                print(f"  {day_name}: {hours['start_time']} - {hours['end_time']}")
            else:
                print(f"  {day_name}: CLOSED")
        print()

        return str(business.id)

    except Exception as e:
        db.rollback()
        print(f"\n❌ Error creating business: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a business with a trial subscription")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("--password", default="change-me-please")
    args = parser.parse_args()

    try:
        create_business(args.email, args.name, args.password)
    except Exception:
        sys.exit(1)
