from datetime import datetime, timedelta

import pytz


def service_date_for(ts: int, tz_name: str = "Europe/London", *, cutover_hours: int = 0) -> int:
    """
    Map an epoch-seconds timestamp to a YYYYMMDD service date in the agency timezone.

    cutover_hours moves the day boundary past midnight, so a 01:30 trip with
    cutover_hours=3 belongs to the previous service date.
    """
    tz = pytz.timezone(tz_name)
    local = datetime.fromtimestamp(int(ts), tz=pytz.utc).astimezone(tz)
    local = local - timedelta(hours=cutover_hours)
    return local.year * 10000 + local.month * 100 + local.day
