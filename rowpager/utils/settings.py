from PySide6.QtCore import QSettings, Signal

# Defaults for settings that are accessed from multiple places.
DEFAULT_SETTINGS = {
    # Page cache settings. Invalid values fall back to the defaults in
    # models/cache_params.py, not to these.
    'page_size': 100,
    'max_concurrent_requests': 2,
    'max_pages_in_cache': 0,  # 0 = unbounded
    'overflow_size': 1,
    'initial_row_count': 0,
    'row_height': 25,  # Grid default row height in pixels
    'server_side_sorting': True,
    'server_side_filtering': True,
    # Diagnostics
    'trace_logs': False,  # Print [TRACE] flow logs for page loads/evictions
}


class Settings(QSettings):
    # Signal that shows that the setting with the given string was changes
    change = Signal(str, object, name='settingsChanged')

    def __init__(self):
        super().__init__('rowpager', 'rowpager')

    def setValue(self, key, value):
        super().setValue(key, value)
        self.change.emit(key, value)

# Common shared instance to ensure the Signal is also shared
settings = Settings()


def get_setting(key: str, settings_obj=None, type=None):
    """Read one setting with its shared default, from `settings_obj` or the
    global settings."""
    source = settings_obj if settings_obj is not None else settings
    default = DEFAULT_SETTINGS.get(key)
    if type is None and default is not None:
        type = default.__class__
    if type is None:
        return source.value(key, defaultValue=default)
    return source.value(key, defaultValue=default, type=type)
