"""Timestamped, optionally throttled flow logging for page cache diagnostics."""

import time

from rowpager.utils.settings import settings

_flow_log_last: dict[str, float] = {}

# Levels that are printed even when trace logs are switched off.
ALWAYS_SHOWN_LEVELS = {'WARNING', 'ERROR'}


def trace_enabled() -> bool:
    try:
        return bool(settings.value('trace_logs', False, type=bool))
    except Exception:
        return False


def log_flow(component: str, message: str, *, level: str = 'DEBUG',
             throttle_key: str | None = None, every_s: float | None = None):
    """Print `[HH:MM:SS.mmm][TRACE][COMPONENT][LEVEL] message`.

    DEBUG/INFO lines only appear when the `trace_logs` setting is on.
    With `throttle_key` and `every_s`, repeats of the same key inside the
    window are dropped.
    """
    if level not in ALWAYS_SHOWN_LEVELS and not trace_enabled():
        return

    now = time.time()
    if throttle_key and every_s is not None:
        last = _flow_log_last.get(throttle_key, 0.0)
        if (now - last) < every_s:
            return
        _flow_log_last[throttle_key] = now
    ts = time.strftime('%H:%M:%S', time.localtime(now)) + f'.{int((now % 1) * 1000):03d}'
    print(f'[{ts}][TRACE][{component}][{level}] {message}')


def reset_throttle():
    _flow_log_last.clear()
