"""Tests for the DoseScheduleService.

Tests schedule parsing, the dose lock window, eligibility ordering and the
next-slot selection used when logging a dose.
"""

import logging
from datetime import datetime, time, timedelta

import pytest

from application.services.dose_schedule_service import (
    DoseScheduleService,
    format_schedule_time,
    parse_schedule_time,
)
from domain.inventory_models import DoseBlockReason


def at(hour, minute=0):
    return datetime(2025, 6, 11, hour, minute)


@pytest.fixture
def service(config, now):
    return DoseScheduleService(config, clock=lambda: now)


# ========================================
# Parsing
# ========================================

class TestParseScheduleTime:
    """Tests for parse_schedule_time."""

    @pytest.mark.parametrize("text,expected", [
        ("08:00", time(8, 0)),
        ("8:05", time(8, 5)),
        (" 21:30\n", time(21, 30)),
        ("8:30 PM", time(20, 30)),
        ("8:30pm", time(20, 30)),
        ("12:15 AM", time(0, 15)),
        ("12:15 PM", time(12, 15)),
        ("O8:00*", time(8, 0)),
    ])
    def test_valid(self, text, expected):
        assert parse_schedule_time(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "noon", "0800", "25:00", "10:60", "13:00 PM", None])
    def test_invalid(self, text):
        assert parse_schedule_time(text) is None

    def test_format_schedule_time(self):
        assert format_schedule_time("08:05") == "8:05 AM"
        assert format_schedule_time("00:30") == "12:30 AM"
        assert format_schedule_time("13:00") == "1:00 PM"
        assert format_schedule_time("bad") == "bad"


# ========================================
# Dose lock window
# ========================================

class TestDoseLock:
    """Tests for the one-hour unlock window."""

    def test_ninety_minutes_ahead_is_locked(self, service):
        assert service.is_dose_locked("10:30", now=at(9, 0))

    def test_fifty_five_minutes_ahead_is_unlocked(self, service):
        assert not service.is_dose_locked("10:00", now=at(9, 5))

    def test_exactly_sixty_minutes_ahead_is_locked(self, service):
        assert service.is_dose_locked("10:00", now=at(9, 0))

    def test_past_dose_is_unlocked_and_overdue(self, service):
        window = service.dose_window("08:30", now=at(9, 0), already_logged=False)
        assert not window.is_locked
        assert window.is_past
        assert window.is_overdue
        assert window.minutes_until == -30

    def test_logged_dose_is_not_locked_or_overdue(self, service):
        assert not service.is_dose_locked("10:30", now=at(9, 0), already_logged=True)
        assert not service.dose_window("08:30", now=at(9, 0), already_logged=True).is_overdue

    def test_current_window(self, service):
        assert service.dose_window("09:20", now=at(9, 0)).is_current
        assert service.dose_window("08:31", now=at(9, 0)).is_current
        assert not service.dose_window("08:30", now=at(9, 0)).is_current

    def test_scheduled_at_is_today(self, service):
        window = service.dose_window("21:00", now=at(9, 0))
        assert window.scheduled_at == at(21, 0)

    def test_uses_clock_when_now_omitted(self, service):
        # Fixed clock is 09:00
        assert service.is_dose_locked("10:30")

    def test_unparseable_time_fails_open(self, service, caplog):
        """Malformed schedule strings leave the dose unlocked (logged as a warning)."""
        with caplog.at_level(logging.WARNING):
            window = service.dose_window("garbage", now=at(9, 0))
        assert window.parse_failed
        assert not window.is_locked
        assert not service.is_dose_locked("99:99", now=at(9, 0))
        assert any("garbage" in r.message for r in caplog.records if r.levelno == logging.WARNING)


# ========================================
# Eligibility
# ========================================

class TestDoseEligibility:
    """Tests for check_dose_eligibility reason ordering."""

    def test_allowed(self, service, make_medicine):
        result = service.check_dose_eligibility(make_medicine(), "09:30", now=at(9, 0))
        assert result.allowed
        assert result.reason is None
        assert result.window is not None

    def test_allowed_without_slot(self, service, make_medicine):
        assert service.check_dose_eligibility(make_medicine(), now=at(9, 0)).allowed

    def test_expired_wins_over_everything(self, service, make_medicine, today):
        medicine = make_medicine(expiry_date=today - timedelta(days=1), tablet_count=0, expiry_alert_shown=True)
        result = service.check_dose_eligibility(medicine, "23:00", now=at(9, 0), already_logged=True)
        assert result.reason == DoseBlockReason.EXPIRED

    def test_out_of_stock_before_lock(self, service, make_medicine):
        result = service.check_dose_eligibility(make_medicine(tablet_count=0), "23:00", now=at(9, 0))
        assert result.reason == DoseBlockReason.OUT_OF_STOCK

    def test_insufficient_stock(self, service, make_medicine):
        result = service.check_dose_eligibility(make_medicine(tablet_count=1), "09:00", now=at(9, 0), quantity=2)
        assert result.reason == DoseBlockReason.INSUFFICIENT_STOCK

    def test_already_logged(self, service, make_medicine):
        result = service.check_dose_eligibility(make_medicine(), "08:00", now=at(9, 0), already_logged=True)
        assert result.reason == DoseBlockReason.ALREADY_LOGGED

    def test_locked(self, service, make_medicine):
        result = service.check_dose_eligibility(make_medicine(), "20:00", now=at(9, 0))
        assert not result.allowed
        assert result.reason == DoseBlockReason.LOCKED

    def test_invalid_quantity(self, service, make_medicine):
        with pytest.raises(ValueError):
            service.check_dose_eligibility(make_medicine(), quantity=0)


# ========================================
# Slot helpers
# ========================================

class TestSlotHelpers:
    """Tests for next_available_time and stock helpers."""

    def test_next_available_picks_upcoming(self, service, make_medicine):
        medicine = make_medicine(schedule_times=("08:00", "14:00", "20:00"))
        assert service.next_available_time(medicine, [], now=at(9, 0)) == "14:00"

    def test_next_available_allows_recent_slot(self, service, make_medicine):
        medicine = make_medicine(schedule_times=("08:00", "14:00"))
        assert service.next_available_time(medicine, [], now=at(8, 25)) == "08:00"

    def test_next_available_skips_logged(self, service, make_medicine):
        medicine = make_medicine(schedule_times=("08:00", "14:00", "20:00"))
        assert service.next_available_time(medicine, ["14:00"], now=at(9, 0)) == "20:00"

    def test_next_available_falls_back_to_any_unlogged(self, service, make_medicine):
        medicine = make_medicine(schedule_times=("08:00", "14:00"))
        assert service.next_available_time(medicine, ["14:00"], now=at(22, 0)) == "08:00"

    def test_next_available_none_when_all_logged(self, service, make_medicine):
        medicine = make_medicine(schedule_times=("08:00", "20:00"))
        assert service.next_available_time(medicine, ["08:00", "20:00"], now=at(9, 0)) is None
        assert service.next_available_time(make_medicine(schedule_times=()), [], now=at(9, 0)) is None

    def test_all_doses_logged(self, service, make_medicine):
        medicine = make_medicine(schedule_times=("08:00", "20:00"))
        assert service.all_doses_logged(medicine, ["20:00", "08:00"])
        assert not service.all_doses_logged(medicine, ["08:00"])
        assert not service.all_doses_logged(make_medicine(schedule_times=()), [])

    def test_remaining_after_dose(self, service, make_medicine):
        assert service.remaining_after_dose(make_medicine(tablet_count=3), 2) == 1
        assert service.remaining_after_dose(make_medicine(tablet_count=1), 2) == 0
        assert service.is_low_stock_after_dose(make_medicine(tablet_count=6), 1)
        assert not service.is_low_stock_after_dose(make_medicine(tablet_count=7), 1)
