"""Shared fixtures: in-memory SQLite session and row factories."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before app.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RECLAIMER_ENABLED"] = "false"
os.environ["RETURN_REMINDERS_ENABLED"] = "false"
os.environ["LOG_DIR"] = ""
os.environ["API_KEY"] = ""
os.environ["SMS_API_KEY"] = ""
os.environ["SMTP_USER"] = ""

import pytest
from datetime import date, datetime, timedelta
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa
from app.database import Base
from app.models.car import Car
from app.models.customer import Customer, NOTIFY_SMS
from app.models.driver import Driver
from app.models.booking import Booking, STATUS_PENDING
from app.utils.business_time import business_today


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture(autouse=True)
def booking_notices():
    """Lifecycle notices are scheduled as detached tasks; tests assert on the schedule call instead."""
    with patch("app.services.booking_service.schedule_booking_notice") as mock_schedule:
        yield mock_schedule


def make_car(db, status="Available", rent_price=1500, **kwargs):
    car = Car(make=kwargs.pop("make", "Toyota"), model=kwargs.pop("model", "Vios"),
              year=kwargs.pop("year", 2022), status=status, rent_price=rent_price,
              mileage=kwargs.pop("mileage", 0), **kwargs)
    db.add(car)
    db.commit()
    return car


def make_customer(db, first_name="Ana", notification_preference=NOTIFY_SMS, **kwargs):
    customer = Customer(first_name=first_name, last_name=kwargs.pop("last_name", "Cruz"),
                        email=kwargs.pop("email", f"{first_name.lower()}@example.com"),
                        contact_no=kwargs.pop("contact_no", "09171234567"),
                        notification_preference=notification_preference, **kwargs)
    db.add(customer)
    db.commit()
    return customer


def make_driver(db, first_name="Ben"):
    driver = Driver(first_name=first_name, last_name="Santos")
    db.add(driver)
    db.commit()
    return driver


def make_booking(db, car, customer, start, end, status=STATUS_PENDING, **kwargs):
    booking = Booking(
        car_id=car.id, customer_id=customer.id,
        start_date=start, end_date=end, booking_status=status,
        booking_date=kwargs.pop("booking_date", datetime.utcnow()),
        total_amount=kwargs.pop("total_amount", 6000),
        balance=kwargs.pop("balance", 6000),
        isPay=kwargs.pop("isPay", False),
        isCancel=kwargs.pop("isCancel", False),
        **kwargs,
    )
    db.add(booking)
    db.commit()
    return booking


def future(days: int) -> date:
    return business_today() + timedelta(days=days)
