from rowpager.datasources.in_memory import InMemoryDataSource
from rowpager.models.controllers import FilterManager, SelectionController, SortController
from rowpager.models.row_node import RowStatus
from rowpager.models.virtual_row_model import VirtualRowModel


class FakeSettings:
    def __init__(self, **values):
        self.values = values

    def value(self, key, defaultValue=None, type=None):
        return self.values.get(key, defaultValue)


class RecordingDataSource:
    def __init__(self):
        self.requests = []

    def request_rows(self, request):
        self.requests.append(request)


def people(count):
    return [{'id': i, 'name': f'person {i:03d}', 'age': 20 + (i % 50)}
            for i in range(count)]


def make_model(**kwargs):
    settings = kwargs.pop('settings', FakeSettings(page_size=10))
    sort_controller = SortController()
    filter_manager = FilterManager()
    selection = SelectionController()
    model = VirtualRowModel(settings_obj=settings, sort_controller=sort_controller,
                            filter_manager=filter_manager,
                            selection_controller=selection, **kwargs)
    return model, sort_controller, filter_manager, selection


def test_model_without_datasource_is_empty():
    model, *_ = make_model()

    assert model.get_type() == 'virtual'
    assert model.is_empty()
    assert not model.is_rows_to_render()
    assert model.get_row(0) is None
    assert model.get_row_count() == 0
    assert model.get_row_combined_height() == 0
    assert model.get_row_index_at_pixel(50) == -1
    visited = []
    model.for_each_node(lambda node, index: visited.append(index))
    assert visited == []


def test_sort_change_before_datasource_is_ignored():
    model, sort_controller, *_ = make_model()

    sort_controller.set_sort_model([{'col_id': 'age', 'sort': 'desc'}])

    assert model.is_empty()


def test_setting_datasource_builds_cache_and_notifies():
    model, *_ = make_model()
    updates = []
    model.model_updated.connect(lambda: updates.append(True))

    model.set_datasource(InMemoryDataSource(people(25)))

    assert updates == [True]
    assert model.is_rows_to_render()
    assert model.cache.params.page_size == 10
    assert model.get_row(12).data['name'] == 'person 012'
    assert model.get_row_count() == 21


def test_page_completions_are_forwarded_as_model_updates():
    model, *_ = make_model()
    datasource = RecordingDataSource()
    model.set_datasource(datasource)
    updates = []
    model.model_updated.connect(lambda: updates.append(True))

    model.get_row(0)
    datasource.requests[0].success(people(10))

    assert updates == [True]
    assert model.get_row(3).status == RowStatus.LOADED


def test_sort_change_replaces_cache_and_forwards_sort_model():
    model, sort_controller, *_ = make_model()
    datasource = RecordingDataSource()
    model.set_datasource(datasource)
    first_cache = model.cache

    sort_controller.set_sort_model([{'col_id': 'age', 'sort': 'desc'}])
    model.get_row(0)

    assert model.cache is not first_cache
    assert first_cache.is_destroyed
    assert datasource.requests[-1].sort_model == [{'col_id': 'age', 'sort': 'desc'}]


def test_filter_change_resets_with_filter_model():
    model, _, filter_manager, _ = make_model()
    model.set_datasource(InMemoryDataSource(people(100)))

    filter_manager.set_filter_model({'age': {'type': 'equals', 'filter': 21}})

    assert model.get_row(0).data['name'] == 'person 001'
    assert model.get_row(1).data['name'] == 'person 051'
    assert model.get_row_count() == 2


def test_client_side_sorting_does_not_reset():
    model, sort_controller, *_ = make_model(server_side_sorting=False)
    model.set_datasource(RecordingDataSource())
    cache = model.cache

    sort_controller.set_sort_model([{'col_id': 'age', 'sort': 'asc'}])

    assert model.cache is cache


def test_server_side_flags_come_from_settings():
    settings = FakeSettings(server_side_filtering=False)
    model, _, filter_manager, _ = make_model(settings=settings)
    model.set_datasource(RecordingDataSource())
    cache = model.cache

    filter_manager.set_filter_model({'name': {'type': 'contains', 'filter': 'x'}})

    assert model.server_side_sorting is True
    assert model.cache is cache


def test_reset_clears_selection_without_row_ids():
    model, _, _, selection = make_model()
    model.set_datasource(RecordingDataSource())
    selection.select('3')

    model.reset()

    assert selection.get_selected_ids() == set()


def test_reset_keeps_selection_with_row_ids():
    model, _, _, selection = make_model(row_id_func=lambda row: row['id'])
    model.set_datasource(InMemoryDataSource(people(30)))
    selection.select('7')

    model.reset()

    assert selection.is_selected('7')
    assert model.get_row(7).id == '7'


def test_invalid_settings_are_reported_as_warnings():
    model, *_ = make_model(settings=FakeSettings(page_size=0, row_height=-3))
    received = []
    model.config_warnings.connect(received.append)

    model.set_datasource(RecordingDataSource())

    assert [w.field for w in received[0]] == ['page_size', 'row_height']
    assert model.cache.params.page_size == 100
    assert model.cache.params.row_height == 25.0
    assert [w.field for w in model.last_warnings] == ['page_size', 'row_height']


def test_deprecated_datasource_fields_are_reported():
    class OldDatasource(RecordingDataSource):
        max_pages_in_cache = 5

    model, *_ = make_model()
    received = []
    model.config_warnings.connect(received.append)

    model.set_datasource(OldDatasource())

    assert [w.field for w in received[0]] == ['max_pages_in_cache']
    assert model.cache.params.max_pages_in_cache is None


def test_deprecation_and_settings_warnings_are_kept_together():
    class OldDatasource(RecordingDataSource):
        max_pages_in_cache = 5

    model, *_ = make_model(settings=FakeSettings(page_size=0))
    received = []
    model.config_warnings.connect(received.append)

    model.set_datasource(OldDatasource())

    assert [w.field for w in model.last_warnings] == ['max_pages_in_cache', 'page_size']
    assert len(received) == 1


def test_replaced_cache_is_disconnected():
    model, sort_controller, *_ = make_model()
    model.set_datasource(RecordingDataSource())
    old_cache = model.cache
    sort_controller.set_sort_model([{'col_id': 'age', 'sort': 'asc'}])
    updates = []
    model.model_updated.connect(lambda: updates.append(True))

    old_cache.model_updated.emit()
    assert updates == []

    model.cache.model_updated.emit()
    assert updates == [True]


def test_destroy_releases_listeners_and_cache():
    model, sort_controller, *_ = make_model()
    model.set_datasource(RecordingDataSource())
    cache = model.cache

    model.destroy()
    sort_controller.set_sort_model([{'col_id': 'age', 'sort': 'asc'}])

    assert cache.is_destroyed
    assert model.cache is None
    assert model.get_row_count() == 0


def test_row_height_and_pixel_mapping_delegate_to_cache():
    model, *_ = make_model(settings=FakeSettings(page_size=10, row_height=20,
                                                 initial_row_count=40))
    model.set_datasource(RecordingDataSource())

    assert model.get_row_height() == 20.0
    assert model.get_row_combined_height() == 800
    assert model.get_row_index_at_pixel(45) == 2


def test_unsupported_mutations_do_nothing():
    model, *_ = make_model()
    model.set_datasource(InMemoryDataSource(people(5)))

    model.add_items([{'id': 99}])
    model.insert_items_at_index(0, [{'id': 98}])
    model.remove_items([model.get_row(0)])

    assert model.get_row_count() == 5
