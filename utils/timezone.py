from datetime import date, datetime, time, timedelta

import pytz

import config

HOTEL_TZ = pytz.timezone(config.HOTEL_TIMEZONE)


def get_hotel_now() -> datetime:
    """Returns current time in Hotel Timezone"""
    return datetime.now(HOTEL_TZ)


def hotel_today() -> date:
    """Operational date of the hotel (front desk 'today')"""
    return get_hotel_now().date()


def to_hotel_time(dt: datetime) -> datetime:
    """Converts a datetime to Hotel Timezone, naive values are taken as UTC"""
    if dt.tzinfo is None:
        return pytz.utc.localize(dt).astimezone(HOTEL_TZ)
    return dt.astimezone(HOTEL_TZ)


def day_bounds_utc(day: date):
    """Naive UTC [start, end) of a hotel calendar day, for filtering utcnow() stamps"""
    start = HOTEL_TZ.localize(datetime.combine(day, time.min))
    end = HOTEL_TZ.localize(datetime.combine(day + timedelta(days=1), time.min))
    return (
        start.astimezone(pytz.utc).replace(tzinfo=None),
        end.astimezone(pytz.utc).replace(tzinfo=None),
    )


def range_bounds_utc(start: date, end: date):
    """Naive UTC bounds covering whole hotel days start..end (end inclusive)"""
    return day_bounds_utc(start)[0], day_bounds_utc(end)[1]
