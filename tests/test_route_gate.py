"""
Tests for the route gate: the pure decision function and the Flask hook.
"""
from unittest.mock import patch
from urllib.parse import parse_qsl, urlsplit

import pytest

from config import Config
from route_gate import (
    ALLOW,
    REDIRECT,
    GateDecision,
    evaluate,
    is_gated_path,
    is_public_path,
    normalize_role,
    safe_return_path,
)


class TestEvaluate:
    """Presence-only decisions"""

    def test_protected_path_without_cookie_redirects_to_login(self):
        decision = evaluate('/admin/dashboard')
        assert decision == GateDecision(REDIRECT, '/auth/login?from=%2Fadmin%2Fdashboard')

    def test_protected_path_with_cookie_passes(self):
        decision = evaluate('/student/report', cookies={'loginToken': 'abc123'})
        assert decision.action == ALLOW
        assert decision.location is None

    def test_empty_cookie_counts_as_missing(self):
        decision = evaluate('/student/report', cookies={'loginToken': ''})
        assert decision.action == REDIRECT
        assert decision.location == '/auth/login?from=%2Fstudent%2Freport'

    def test_root_with_cookie_goes_to_default_landing(self):
        decision = evaluate('/', cookies={'loginToken': 'abc123'})
        assert decision == GateDecision(REDIRECT, '/student/dashboard')

    def test_login_with_cookie_honours_from(self):
        decision = evaluate('/auth/login', args={'from': '/admin/items'},
                            cookies={'loginToken': 'abc123'})
        assert decision == GateDecision(REDIRECT, '/admin/items')

    @pytest.mark.parametrize('path', ['/', '/auth/login', '/auth/signup', '/auth/verify/email'])
    def test_public_paths_without_cookie_pass(self, path):
        assert evaluate(path).action == ALLOW

    @pytest.mark.parametrize('path', [
        '/api/health', '/api', '/static/style.css', '/favicon.ico', '/images/logo.PNG', '/hero.webp'
    ])
    def test_excluded_paths_are_never_gated(self, path):
        assert evaluate(path) == GateDecision(ALLOW, None)

    def test_decision_is_idempotent(self):
        args = {'from': '/admin/classes'}
        cookies = {'loginToken': 'abc123'}
        first = evaluate('/auth/login', args=args, cookies=cookies)
        second = evaluate('/auth/login', args=args, cookies=cookies)
        assert first == second

    def test_other_cookies_are_ignored(self):
        decision = evaluate('/admin/dashboard', cookies={'sessionClaims': 'x', 'sidebarCollapsed': 'true'})
        assert decision.action == REDIRECT


class TestReturnPath:
    """Validation of the `from` target"""

    @pytest.mark.parametrize('value', [
        '//evil.example.com', 'https://evil.example.com/x', '/\\evil', 'admin/dashboard',
        '/auth/login', '/', '', None,
    ])
    def test_unsafe_values_fall_back_to_default(self, value):
        assert safe_return_path(value) is None
        decision = evaluate('/auth/login', args={'from': value}, cookies={'loginToken': 't'})
        assert decision.location == '/student/dashboard'

    def test_local_path_with_query_is_kept(self):
        assert safe_return_path('/admin/all-reports?page=2') == '/admin/all-reports?page=2'


class TestRoleEnforcement:
    """Section checks when ENFORCE_ROLE_SECTIONS is on"""

    def test_student_is_sent_away_from_admin(self):
        decision = evaluate('/admin/dashboard', cookies={'loginToken': 't'}, role='student', enforce_roles=True)
        assert decision == GateDecision(REDIRECT, '/student/dashboard')

    def test_admin_is_sent_away_from_student(self):
        decision = evaluate('/student/submit', cookies={'loginToken': 't'}, role='admin', enforce_roles=True)
        assert decision == GateDecision(REDIRECT, '/admin/dashboard')

    def test_matching_role_passes(self):
        decision = evaluate('/admin/items', cookies={'loginToken': 't'}, role='admin', enforce_roles=True)
        assert decision.action == ALLOW

    def test_token_without_claims_is_unauthenticated(self):
        decision = evaluate('/admin/items', cookies={'loginToken': 't'}, role=None, enforce_roles=True)
        assert decision.location == '/auth/login?from=%2Fadmin%2Fitems'

    def test_admin_on_public_path_goes_to_admin_landing(self):
        decision = evaluate('/', cookies={'loginToken': 't'}, role='admin', enforce_roles=True)
        assert decision.location == '/admin/dashboard'

    def test_role_ignored_when_enforcement_off(self):
        decision = evaluate('/admin/items', cookies={'loginToken': 't'}, role='student', enforce_roles=False)
        assert decision.action == ALLOW

    @pytest.mark.parametrize('role', ['representative', 'staff', '', 42])
    def test_unknown_role_is_sent_to_login(self, role):
        decision = evaluate('/student/dashboard', cookies={'loginToken': 't'}, role=role, enforce_roles=True)
        assert decision == GateDecision(REDIRECT, '/auth/login?from=%2Fstudent%2Fdashboard')

    def test_unknown_role_may_open_login(self):
        decision = evaluate('/auth/login', cookies={'loginToken': 't'}, role='representative', enforce_roles=True)
        assert decision.action == ALLOW

    def test_role_case_is_normalised(self):
        assert normalize_role(' STUDENT ') == 'student'
        decision = evaluate('/student/dashboard', cookies={'loginToken': 't'}, role='Student', enforce_roles=True)
        assert decision.action == ALLOW
        decision = evaluate('/', cookies={'loginToken': 't'}, role='ADMIN', enforce_roles=True)
        assert decision.location == '/admin/dashboard'


class TestRedirectsSettle:
    """Following the gate's redirects always ends on a page it allows"""

    PATHS = ['/', '/auth/login', '/admin/dashboard', '/admin/items', '/student/dashboard',
             '/student/submit', '/logout']
    ROLES = [None, 'admin', 'student', 'STUDENT', 'representative', '']
    FROMS = [None, '/admin/classes', '/student/report', '//evil.example.com']

    @pytest.mark.parametrize('enforce_roles', [True, False])
    @pytest.mark.parametrize('role', ROLES)
    @pytest.mark.parametrize('token', ['', 't'])
    def test_no_redirect_loops(self, enforce_roles, role, token):
        cookies = {'loginToken': token}
        for start in self.PATHS:
            for from_value in self.FROMS:
                path, args = start, ({'from': from_value} if from_value else {})
                for _ in range(3):
                    decision = evaluate(path, args=args, cookies=cookies, role=role, enforce_roles=enforce_roles)
                    if decision.action == ALLOW:
                        break
                    target = urlsplit(decision.location)
                    assert target.path != path, (start, from_value, decision)
                    path, args = target.path, dict(parse_qsl(target.query))
                else:
                    pytest.fail(f"gate kept redirecting from {start} (from={from_value})")


class TestPathHelpers:
    def test_is_public_path(self):
        assert is_public_path('/')
        assert is_public_path('/auth/reset-password/new-password')
        assert not is_public_path('/admin')

    def test_is_gated_path(self):
        assert is_gated_path('/admin/dashboard')
        assert not is_gated_path('/api/admin/dashboard/getClasses')
        assert not is_gated_path('/apiary')
        assert not is_gated_path('/favicon.ico')
        assert is_gated_path('/student/api-notes')


class TestGateHook:
    """The before_request hook installed on the app"""

    def test_unauthenticated_page_request_is_redirected(self, client, backend):
        response = client.get('/admin/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/auth/login?from=%2Fadmin%2Fdashboard')
        backend.get.assert_not_called()

    def test_authenticated_user_is_bounced_from_login(self, student_client):
        response = student_client.get('/auth/login')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/student/dashboard')

    def test_health_endpoint_is_not_gated(self, client):
        assert client.get('/api/health').status_code == 200

    def test_role_enforcement_uses_session_claims(self, student_client, backend):
        with patch.object(Config, 'ENFORCE_ROLE_SECTIONS', True):
            response = student_client.get('/admin/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/student/dashboard')
