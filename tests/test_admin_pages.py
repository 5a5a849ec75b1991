"""
Integration tests for the admin section.

The backend is a MagicMock (see conftest); every call fails unless a test
gives it a return value, so most pages render from sample data.
"""
import io
import re
from unittest.mock import patch

from openpyxl import load_workbook

import fallback_data
import server
from backend_client import BackendError, BackendResult
from config import Config
from schemas import AllReportsData, Pagination, ReportStats


def page_of(reports, page=1, total_pages=1):
    return BackendResult(AllReportsData(
        reports=reports,
        pagination=Pagination(current_page=page, total_pages=total_pages,
                              total_count=len(reports) * total_pages,
                              has_next=page < total_pages, has_prev=page > 1),
        stats=ReportStats(total=len(reports) * total_pages)
    ))


class TestDashboard:

    def test_backend_down_shows_sample_data_and_retry(self, admin_client, backend):
        response = admin_client.get('/admin/dashboard')
        html = response.get_data(as_text=True)

        assert response.status_code == 200
        assert 'Unable to connect to the server' in html
        assert 'Showing sample data.' in html
        assert 'Retry' in html
        assert 'Total Students' in html
        assert '856' in html

    def test_live_data_has_no_banner(self, admin_client, backend):
        backend.get.side_effect = None
        backend.get.return_value = BackendResult(fallback_data.sample_admin_dashboard())

        html = admin_client.get('/admin/dashboard').get_data(as_text=True)

        assert 'Showing sample data.' not in html
        assert 'Total Students' in html
        path = backend.get.call_args[0][0]
        assert path == '/api/admin/dashboard/getAdminDashboardData'
        assert backend.get.call_args[1]['token'] == 'abc123'

    def test_without_fallback_only_the_error_is_shown(self, admin_client, backend):
        with patch.object(Config, 'USE_FALLBACK_DATA', False):
            html = admin_client.get('/admin/dashboard').get_data(as_text=True)
        assert 'Unable to connect to the server' in html
        assert 'Showing sample data.' not in html
        assert 'Total Students' not in html

    def test_signed_out_visitor_is_sent_to_login(self, client, backend):
        response = client.get('/admin/dashboard')
        assert response.status_code == 302
        assert '/auth/login?from=%2Fadmin%2Fdashboard' in response.headers['Location']
        backend.get.assert_not_called()


class TestTodayReports:

    def test_search_filters_rows(self, admin_client, backend):
        html = admin_client.get('/admin/today-reports', query_string={'search': 'Report #3'}).get_data(as_text=True)
        assert 'Safety Report #3' in html
        assert 'Safety Report #2' not in html

    def test_status_filter(self, admin_client, backend):
        html = admin_client.get('/admin/today-reports?status=approved').get_data(as_text=True)
        assert 'Safety Report #2' in html
        assert 'Safety Report #4' not in html

    def test_selected_report_opens_detail(self, admin_client, backend):
        html = admin_client.get('/admin/today-reports', query_string={'report': 'sample-1'}).get_data(as_text=True)
        assert 'card report-detail' in html
        assert 'Fire Extinguisher' in html
        assert '/admin/today-reports?report=sample-2' in html

    def test_unknown_report_has_no_detail(self, admin_client, backend):
        html = admin_client.get('/admin/today-reports?report=missing').get_data(as_text=True)
        assert 'card report-detail' not in html


class TestAllReports:

    def test_fallback_is_paginated_locally(self, admin_client, backend):
        html = admin_client.get('/admin/all-reports').get_data(as_text=True)
        assert 'Page 1 of 5 (50 reports)' in html
        assert 'Next' in html

    def test_rows_link_to_detail_keeping_filters(self, admin_client, backend):
        html = admin_client.get('/admin/all-reports', query_string={'search': 'Report #3'}).get_data(as_text=True)
        assert 'report=sample-3' in html
        assert 'card report-detail' not in html

        html = admin_client.get('/admin/all-reports',
                                query_string={'search': 'Report #3', 'report': 'sample-3'}).get_data(as_text=True)
        assert 'card report-detail' in html
        assert 'Fire Extinguisher' in html

    def test_backend_receives_the_query(self, admin_client, backend):
        backend.get.side_effect = None
        backend.get.return_value = page_of(fallback_data.sample_reports(3))

        admin_client.get('/admin/all-reports?page=2&search=lab&status=approved&sortBy=title&sortOrder=asc')

        params = backend.get.call_args[1]['params']
        assert params == {'page': 2, 'limit': 10, 'search': 'lab', 'status': 'approved',
                          'sortBy': 'title', 'sortOrder': 'asc'}

    def test_unknown_sort_field_and_all_status(self, admin_client, backend):
        backend.get.side_effect = None
        backend.get.return_value = page_of([])

        admin_client.get('/admin/all-reports?sortBy=password&status=all&page=-3')

        params = backend.get.call_args[1]['params']
        assert params['sortBy'] == 'createdAt'
        assert params['status'] is None
        assert params['page'] == 1


class TestLiveSearch:

    def test_returns_current_page_as_json(self, admin_client, backend):
        backend.get.side_effect = None
        backend.get.return_value = page_of(fallback_data.sample_reports(2))

        body = admin_client.get('/admin/all-reports/data?seq=1&search=x').get_json()

        assert body['success'] is True
        assert body['seq'] == 1
        assert body['sample'] is False
        assert [r['title'] for r in body['data']['reports']] == ['Safety Report #1', 'Safety Report #2']
        assert body['data']['reports'][0]['class'] == 'Computer Science'
        assert body['data']['pagination']['totalPages'] == 1

    def test_older_sequence_is_refused(self, admin_client, backend):
        admin_client.get('/admin/all-reports/data?seq=5')
        backend.get.reset_mock()

        response = admin_client.get('/admin/all-reports/data?seq=3')

        assert response.status_code == 409
        assert response.get_json() == {'success': False, 'superseded': True}
        backend.get.assert_not_called()

    def test_response_overtaken_while_in_flight(self, admin_client, backend):
        def newer_request_arrives(*args, **kwargs):
            server.search_registry.issue('abc123', 'all-reports', 2, 'p1')
            return page_of(fallback_data.sample_reports(1))

        backend.get.side_effect = newer_request_arrives
        response = admin_client.get('/admin/all-reports/data?seq=1&pageId=p1')
        assert response.status_code == 409

    def test_invalid_sequence(self, admin_client):
        assert admin_client.get('/admin/all-reports/data?seq=abc').status_code == 400

    def test_backend_error_without_fallback(self, admin_client, backend):
        with patch.object(Config, 'USE_FALLBACK_DATA', False):
            response = admin_client.get('/admin/all-reports/data?seq=1')
        assert response.status_code == 502
        assert response.get_json()['success'] is False

    def test_sample_data_is_flagged(self, admin_client, backend):
        body = admin_client.get('/admin/all-reports/data?seq=1').get_json()
        assert body['success'] is True
        assert body['sample'] is True
        assert len(body['data']['reports']) == 10

    def test_reload_starts_a_fresh_sequence(self, admin_client, backend):
        for seq in range(1, 6):
            admin_client.get(f'/admin/all-reports/data?seq={seq}&pageId=aaaa')
        response = admin_client.get('/admin/all-reports/data?seq=1&pageId=bbbb')
        assert response.status_code == 200
        assert response.get_json()['seq'] == 1

    def test_two_tabs_do_not_cancel_each_other(self, admin_client, backend):
        statuses = [
            admin_client.get(url).status_code for url in (
                '/admin/all-reports/data?seq=3&pageId=aaaa',
                '/admin/all-reports/data?seq=1&pageId=bbbb',
                '/admin/all-reports/data?seq=4&pageId=aaaa',
                '/admin/all-reports/data?seq=2&pageId=bbbb',
            )
        ]
        assert statuses == [200, 200, 200, 200]
        assert admin_client.get('/admin/all-reports/data?seq=2&pageId=aaaa').status_code == 409

    def test_invalid_page_id(self, admin_client, backend):
        for page_id in ('ZZ!', 'x' * 40):
            response = admin_client.get('/admin/all-reports/data', query_string={'seq': 1, 'pageId': page_id})
            assert response.status_code == 400
        backend.get.assert_not_called()

    def test_each_render_gets_its_own_page_id(self, admin_client, backend):
        ids = [
            re.search(r'data-page-id="([0-9a-f]+)"', admin_client.get('/admin/all-reports').get_data(as_text=True)).group(1)
            for _ in range(2)
        ]
        assert ids[0] != ids[1]

    def test_pagination_links(self, admin_client, backend):
        body = admin_client.get('/admin/all-reports/data', query_string={'seq': 1, 'search': 'Report'}).get_json()
        links = body['data']['links']
        assert links['prev'] is None
        assert 'page=2' in links['next']
        assert 'search=Report' in links['next']
        assert links['next'].startswith('/admin/all-reports?')


class TestExports:

    def test_all_reports_export_walks_every_page(self, admin_client, backend):
        backend.get.side_effect = [
            page_of(fallback_data.sample_reports(10), page=1, total_pages=2),
            page_of(fallback_data.sample_reports(4), page=2, total_pages=2),
        ]

        response = admin_client.get('/admin/all-reports/export?status=pending')

        assert response.status_code == 200
        assert 'attachment' in response.headers['Content-Disposition']
        assert 'All_Reports_' in response.headers['Content-Disposition']
        sheet = load_workbook(io.BytesIO(response.data)).active
        assert sheet.max_row == 1 + 14
        pages = [c[1]['params']['page'] for c in backend.get.call_args_list]
        assert pages == [1, 2]

    def test_export_from_sample_data(self, admin_client, backend):
        response = admin_client.get('/admin/all-reports/export?status=approved')
        sheet = load_workbook(io.BytesIO(response.data)).active
        statuses = {row[3] for row in sheet.iter_rows(min_row=2, values_only=True)}
        assert statuses == {'Approved'}

    def test_week_export(self, admin_client, backend):
        response = admin_client.get('/admin/organized-reports/view/export?week=44')
        assert response.status_code == 200
        sheet = load_workbook(io.BytesIO(response.data)).active
        assert sheet.title == 'Week 44'
        assert sheet.max_row == 1 + 6


class TestWeeklyAndOrganized:

    def test_weekly_report_day_detail(self, admin_client, backend):
        html = admin_client.get('/admin/weekly-report?day=Tuesday').get_data(as_text=True)
        assert 'Daily breakdown' in html
        assert 'Good (51)' in html
        assert 'John Doe' in html

    def test_weekly_report_unknown_day(self, admin_client, backend):
        response = admin_client.get('/admin/weekly-report?day=Caturday')
        assert response.status_code == 200
        assert 'Good (' not in response.get_data(as_text=True)

    def test_organized_reports_search(self, admin_client, backend):
        html = admin_client.get('/admin/organized-reports?search=44').get_data(as_text=True)
        assert 'Week 44' in html
        assert 'Week 43' not in html

    def test_week_view_needs_a_week(self, admin_client, backend):
        response = admin_client.get('/admin/organized-reports/view')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/admin/organized-reports')

    def test_week_view_passes_dates_and_shows_report_detail(self, admin_client, backend):
        html = admin_client.get(
            '/admin/organized-reports/view',
            query_string={'week': '44', 'startDate': 'Oct 24', 'endDate': 'Oct 30', 'report': 'sample-2'}
        ).get_data(as_text=True)

        assert backend.get.call_args[1]['params'] == {'week': '44', 'startDate': 'Oct 24', 'endDate': 'Oct 30'}
        assert 'report-detail' in html
        assert 'Fire Extinguisher' in html


class TestDirectoryPages:

    def test_classes_search(self, admin_client, backend):
        html = admin_client.get('/admin/classes?search=chemistry').get_data(as_text=True)
        assert 'Chemistry Year 4' in html
        assert 'Physics Year 3' not in html

    def test_items_category_filter(self, admin_client, backend):
        html = admin_client.get('/admin/items?category=Electrical').get_data(as_text=True)
        assert 'Lighting' in html
        assert 'First Aid Kit' not in html

    def test_representatives_department_filter(self, admin_client, backend):
        html = admin_client.get('/admin/representatives?department=Physics').get_data(as_text=True)
        assert 'Sarah Williams' in html
        assert 'Mike Johnson' not in html

    def test_profile(self, admin_client, backend):
        html = admin_client.get('/admin/profile').get_data(as_text=True)
        assert 'ADM-2024-001' in html


class TestLayout:

    def test_sidebar_shows_signed_in_user(self, admin_client, backend):
        html = admin_client.get('/admin/profile').get_data(as_text=True)
        assert 'Ada Admin' in html
        assert 'All Reports' in html

    def test_sidebar_toggle_flips_cookie(self, admin_client):
        response = admin_client.post('/ui/sidebar', data={'next': '/admin/items'})
        assert response.headers['Location'].endswith('/admin/items')
        assert 'sidebarCollapsed=true' in response.headers['Set-Cookie']

        response = admin_client.post('/ui/sidebar', data={'next': 'https://evil.example.com'})
        assert 'sidebarCollapsed=false' in response.headers['Set-Cookie']
        assert response.headers['Location'].endswith('/admin/dashboard')

    def test_backend_error_status_passthrough(self, admin_client, backend):
        backend.get.side_effect = BackendError("Forbidden", status=403)
        html = admin_client.get('/admin/classes').get_data(as_text=True)
        assert 'Forbidden' in html
