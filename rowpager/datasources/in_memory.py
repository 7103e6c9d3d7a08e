from rowpager.datasources.base import RowRequest
from rowpager.datasources.models import filter_rows, sort_rows
from rowpager.errors import DataSourceError
from rowpager.utils.flow_log import log_flow


class InMemoryDataSource:
    """Serves rows from a list, answering each request synchronously.

    With `report_last_row` the total row count is passed back with every
    page; otherwise only a short page reveals the end.
    """

    def __init__(self, rows: list[dict], report_last_row: bool = False):
        self._rows = list(rows)
        self.report_last_row = report_last_row
        self.request_count = 0

    def _view(self, sort_model, filter_model) -> list[dict]:
        rows = filter_rows(self._rows, filter_model)
        return sort_rows(rows, sort_model)

    def request_rows(self, request: RowRequest) -> None:
        self.request_count += 1
        try:
            rows = self._view(request.sort_model, request.filter_model)
        except DataSourceError as e:
            log_flow('DATASOURCE', f'Rejected request: {e}', level='WARNING')
            request.fail(e)
            return
        page = rows[request.start_row:request.end_row + 1]
        last_row = len(rows) if self.report_last_row else None
        request.success(page, last_row)
