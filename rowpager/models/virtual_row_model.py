"""
Row model that presents a remote data source through a page cache.

The model owns the current VirtualPageCache and replaces it whenever the
data source, the sort model or the filter model changes. Everything else
(row access, counts, pixel mapping) is delegated to the cache.
"""

from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from rowpager.datasources.base import DataSource
from rowpager.models.cache_params import (ConfigWarning, cache_params_from_settings,
                                          check_datasource_deprecations)
from rowpager.models.row_node import RowNode
from rowpager.models.virtual_page_cache import VirtualPageCache
from rowpager.utils.flow_log import log_flow
from rowpager.utils.settings import get_setting
from rowpager.utils.subscriptions import SignalSubscriptions

ROW_MODEL_TYPE_VIRTUAL = 'virtual'


class VirtualRowModel(QObject):
    """Owns the page cache for the current (datasource, sort, filter)."""

    # Signals
    model_updated = Signal()  # Re-render: after each page completion and each reset
    model_reset = Signal()  # A new cache replaced the old one; emitted before model_updated
    config_warnings = Signal(object)  # list[ConfigWarning] from the last validation pass

    def __init__(self, settings_obj=None, sort_controller=None, filter_manager=None,
                 selection_controller=None,
                 row_id_func: Optional[Callable[[dict], object]] = None,
                 server_side_sorting: Optional[bool] = None,
                 server_side_filtering: Optional[bool] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._settings = settings_obj
        self._sort_controller = sort_controller
        self._filter_manager = filter_manager
        self._selection_controller = selection_controller
        self._row_id_func = row_id_func

        if server_side_sorting is None:
            server_side_sorting = bool(get_setting('server_side_sorting', settings_obj, type=bool))
        if server_side_filtering is None:
            server_side_filtering = bool(get_setting('server_side_filtering', settings_obj, type=bool))
        self.server_side_sorting = server_side_sorting
        self.server_side_filtering = server_side_filtering

        self._datasource: Optional[DataSource] = None
        self._cache: Optional[VirtualPageCache] = None
        self._last_warnings: list[ConfigWarning] = []

        self._subscriptions = SignalSubscriptions()
        self._cache_subscriptions = SignalSubscriptions()
        self._add_event_listeners()

    def _add_event_listeners(self):
        if self._filter_manager is not None and hasattr(self._filter_manager, 'filter_changed'):
            self._subscriptions.connect(self._filter_manager.filter_changed, self._on_filter_changed)
        if self._sort_controller is not None and hasattr(self._sort_controller, 'sort_changed'):
            self._subscriptions.connect(self._sort_controller.sort_changed, self._on_sort_changed)

    def _on_filter_changed(self):
        if self.server_side_filtering:
            self.reset()

    def _on_sort_changed(self):
        if self.server_side_sorting:
            self.reset()

    def get_type(self) -> str:
        return ROW_MODEL_TYPE_VIRTUAL

    # ========== Datasource & Reset ==========

    def set_datasource(self, datasource: Optional[DataSource]):
        self._datasource = datasource
        # Only reset with a datasource to work with
        if datasource is not None:
            self._reset(check_datasource_deprecations(datasource))

    @property
    def datasource(self) -> Optional[DataSource]:
        return self._datasource

    @property
    def cache(self) -> Optional[VirtualPageCache]:
        return self._cache

    @property
    def last_warnings(self) -> list[ConfigWarning]:
        return list(self._last_warnings)

    def _report_warnings(self, warnings: list[ConfigWarning]):
        self._last_warnings = list(warnings)
        if not warnings:
            return
        for warning in warnings:
            log_flow('CONFIG', str(warning), level='WARNING')
        self.config_warnings.emit(list(warnings))

    def reset(self):
        """Throw away the current cache and start again from the first page."""
        self._reset()

    def _reset(self, warnings: Optional[list[ConfigWarning]] = None):
        # Sort or filter may be set before the datasource
        if self._datasource is None:
            return

        # With row ids supplied by the application, rows keep their identity
        # across resets, so the selection can survive.
        if self._row_id_func is None and self._selection_controller is not None:
            self._selection_controller.reset()

        self._reset_cache(list(warnings or []))
        self.model_reset.emit()
        self.model_updated.emit()

    def _reset_cache(self, warnings: list[ConfigWarning]):
        sort_model = self._sort_controller.get_sort_model() if self._sort_controller is not None else None
        filter_model = self._filter_manager.get_filter_model() if self._filter_manager is not None else None

        # Snapshot the settings now; changes apply to the next cache.
        params, settings_warnings = cache_params_from_settings(
            self._settings,
            sort_model=sort_model,
            filter_model=filter_model,
            row_id_func=self._row_id_func,
        )
        warnings.extend(settings_warnings)
        if warnings:
            self._report_warnings(warnings)

        self._cache_subscriptions.release_all()
        if self._cache is not None:
            self._cache.destroy()

        self._cache = VirtualPageCache(params, self._datasource)
        self._cache_subscriptions.connect(self._cache.model_updated, self._on_cache_updated)
        log_flow('ROW_MODEL', f'Cache reset: page_size={params.page_size}, '
                 f'sort={sort_model!r}, filter={filter_model!r}', level='INFO')

    def _on_cache_updated(self):
        self.model_updated.emit()

    # ========== Delegation ==========

    def is_empty(self) -> bool:
        return self._cache is None

    def is_rows_to_render(self) -> bool:
        return self._cache is not None

    def get_row(self, row_index: int) -> Optional[RowNode]:
        return self._cache.get_row(row_index) if self._cache else None

    def for_each_node(self, callback: Callable[[RowNode, int], None]):
        if self._cache:
            self._cache.for_each_node(callback)

    def get_row_combined_height(self) -> float:
        return self._cache.get_row_combined_height() if self._cache else 0

    def get_row_index_at_pixel(self, pixel: float) -> int:
        return self._cache.get_row_index_at_pixel(pixel) if self._cache else -1

    def get_row_count(self) -> int:
        return self._cache.get_row_count() if self._cache else 0

    def get_row_height(self) -> float:
        if self._cache:
            return self._cache.params.row_height
        return float(get_setting('row_height', self._settings, type=float))

    def insert_items_at_index(self, index: int, items: list):
        log_flow('ROW_MODEL', 'insert_items_at_index is not yet supported', level='WARNING')

    def remove_items(self, row_nodes: list):
        log_flow('ROW_MODEL', 'remove_items is not yet supported', level='WARNING')

    def add_items(self, items: list):
        log_flow('ROW_MODEL', 'add_items is not yet supported', level='WARNING')

    # ========== Teardown ==========

    def destroy(self):
        self._subscriptions.release_all()
        self._cache_subscriptions.release_all()
        if self._cache is not None:
            self._cache.destroy()
            self._cache = None
