"""Configuration snapshot for one page cache, and the pass that builds it.

Every value is checked once here. Out-of-range values are replaced with
defaults and reported as `ConfigWarning`s instead of raising, so a cache is
always constructed from a fully populated, immutable `CacheParams`.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from rowpager.utils.settings import DEFAULT_SETTINGS, get_setting

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_CONCURRENT_REQUESTS = 2
DEFAULT_OVERFLOW_SIZE = 1
DEFAULT_INITIAL_ROW_COUNT = 0

# Attributes that used to be read from the datasource object itself.
DEPRECATED_DATASOURCE_FIELDS = {
    'max_concurrent_requests': 'max_concurrent_requests setting',
    'max_pages_in_cache': 'max_pages_in_cache setting',
    'overflow_size': 'overflow_size setting',
    'page_size': 'page_size setting',
}


@dataclass(frozen=True)
class ConfigWarning:
    field: str
    value: Any
    replacement: Any
    message: str

    def __str__(self):
        return self.message


@dataclass(frozen=True)
class CacheParams:
    page_size: int = DEFAULT_PAGE_SIZE
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    max_pages_in_cache: Optional[int] = None  # None = unbounded
    overflow_size: int = DEFAULT_OVERFLOW_SIZE
    initial_row_count: int = DEFAULT_INITIAL_ROW_COUNT
    row_height: float = float(DEFAULT_SETTINGS['row_height'])
    sort_model: Any = None
    filter_model: Any = None
    row_id_func: Optional[Callable[[dict], Any]] = None


def _as_number(value):
    """Return `value` as int/float, or None when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value) if '.' in str(value) else int(value)
    except (TypeError, ValueError):
        return None


def _at_least_one(name, value, default, warnings, *, unset_ok=False):
    number = _as_number(value)
    if number is not None and number >= 1:
        return int(number)
    if not (unset_ok and value in (None, 0, '', '0')):
        warnings.append(ConfigWarning(
            name, value, default,
            f'{name}={value!r} is invalid (must be >= 1), using {default!r}'))
    return default


def resolve_cache_params(*, page_size=None, max_concurrent_requests=None,
                         max_pages_in_cache=None, overflow_size=None,
                         initial_row_count=None, row_height=None,
                         default_row_height: float | None = None,
                         sort_model=None, filter_model=None,
                         row_id_func=None) -> tuple[CacheParams, list[ConfigWarning]]:
    """Build a `CacheParams` from raw values, replacing invalid ones with defaults.

    Unset optional values (`max_pages_in_cache`, `initial_row_count`) take
    their defaults silently; anything else that is out of range produces a
    `ConfigWarning`.

    Returns:
        The params snapshot and the list of warnings raised while building it.
    """
    warnings: list[ConfigWarning] = []

    if default_row_height is None:
        default_row_height = float(DEFAULT_SETTINGS['row_height'])

    resolved_page_size = _at_least_one(
        'page_size', page_size, DEFAULT_PAGE_SIZE, warnings,
        unset_ok=page_size is None)
    resolved_requests = _at_least_one(
        'max_concurrent_requests', max_concurrent_requests,
        DEFAULT_MAX_CONCURRENT_REQUESTS, warnings,
        unset_ok=max_concurrent_requests is None)
    resolved_overflow = _at_least_one(
        'overflow_size', overflow_size, DEFAULT_OVERFLOW_SIZE, warnings,
        unset_ok=overflow_size is None)
    resolved_initial = _at_least_one(
        'initial_row_count', initial_row_count, DEFAULT_INITIAL_ROW_COUNT,
        warnings, unset_ok=True)
    resolved_max_pages = _at_least_one(
        'max_pages_in_cache', max_pages_in_cache, None, warnings, unset_ok=True)

    height = _as_number(row_height)
    if height is not None and height > 0:
        resolved_height = float(height)
    else:
        resolved_height = float(default_row_height)
        if row_height is not None:
            warnings.append(ConfigWarning(
                'row_height', row_height, resolved_height,
                f'row_height={row_height!r} is invalid (must be > 0), '
                f'using {resolved_height!r}'))

    params = CacheParams(
        page_size=resolved_page_size,
        max_concurrent_requests=resolved_requests,
        max_pages_in_cache=resolved_max_pages,
        overflow_size=resolved_overflow,
        initial_row_count=resolved_initial,
        row_height=resolved_height,
        sort_model=sort_model,
        filter_model=filter_model,
        row_id_func=row_id_func,
    )
    return params, warnings


def cache_params_from_settings(settings_obj=None, **overrides):
    """Read the page cache settings and run them through `resolve_cache_params`.

    `settings_obj` is anything with a QSettings-style
    `value(key, defaultValue=, type=)`; the shared settings are used when it
    is None. Keyword overrides (sort/filter models, row id function) win over
    stored values.
    """
    raw = {}
    for key in ('page_size', 'max_concurrent_requests', 'max_pages_in_cache',
                'overflow_size', 'initial_row_count'):
        raw[key] = get_setting(key, settings_obj, type=int)
    raw['row_height'] = get_setting('row_height', settings_obj, type=float)
    raw.update(overrides)
    return resolve_cache_params(**raw)


def check_datasource_deprecations(datasource) -> list[ConfigWarning]:
    """Report cache settings that were set on the datasource object directly.

    These used to be read from the datasource; they are ignored now and
    belong in the settings instead.
    """
    warnings = []
    for attr, replacement in DEPRECATED_DATASOURCE_FIELDS.items():
        value = getattr(datasource, attr, None)
        if value is not None:
            warnings.append(ConfigWarning(
                attr, value, None,
                f'datasource.{attr} is no longer read, use the {replacement} instead'))
    return warnings
