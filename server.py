# =================================================================
#   NPC Smart Report - Web Server
# =================================================================

from flask import Flask, g, jsonify, redirect, render_template, request, url_for
import datetime
import re

from flask import send_file

import logging
from logging.handlers import RotatingFileHandler
from apscheduler.schedulers.background import BackgroundScheduler
import atexit
import analytics
import exports
import email_service
import fallback_data
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_cors import CORS

import sys
import os
# Fix console encoding for Windows to support unicode
if sys.platform == "win32":
    os.environ['PYTHONIOENCODING'] = 'utf-8'
    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(encoding='utf-8')
    if hasattr(sys.stderr, 'reconfigure'):
        sys.stderr.reconfigure(encoding='utf-8')


class UTF8StreamHandler(logging.StreamHandler):
    """Custom handler that forces UTF-8 encoding on the console"""

    def emit(self, record):
        try:
            msg = self.format(record)
            if sys.platform == "win32":
                stream = sys.stderr
                stream.write(msg.encode('utf-8', errors='replace').decode('utf-8'))
            else:
                self.stream.write(msg)
            self.stream.write(self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


from config import Config
from backend_client import BackendClient, BackendError
from request_tokens import LatestRequestRegistry, is_valid_page_id, new_page_id
from route_gate import (
    KNOWN_ROLES,
    install_route_gate,
    landing_path_for_role,
    normalize_role,
    safe_return_path,
)
from session_claims import issue_claims, read_claims
from schemas import (
    AdminProfile,
    AllReportsData,
    CatalogData,
    ClassesData,
    DashboardData,
    ItemsData,
    LoginResult,
    OrganizedReportsData,
    Pagination,
    ReportStats,
    RepresentativesData,
    StudentProfile,
    StudentReportsData,
    TodayReportsData,
    WeekReportsData,
    WeeklyReportData,
)


# ------------------- Optional For Logger ----------------------
from werkzeug.serving import WSGIRequestHandler
import time


class TimedRequestHandler(WSGIRequestHandler):
    """Custom request handler that only logs slow requests"""
    def log_request(self, code='-', size='-'):
        # Only log requests that took > 1 second or had errors
        if hasattr(self, '_start_time'):
            duration = time.time() - self._start_time
            if duration > 1.0 or int(code) >= 400:
                self.log('info', f'"{self.requestline}" {code} {size} ({duration:.2f}s)')


# --- Configure logging with rotation ---
log_file_handler = RotatingFileHandler(
    Config.LOG_FILE,
    maxBytes=10 * 1024 * 1024,  # 10 MB per file
    backupCount=5,
    encoding='utf-8'
)
log_file_handler.setLevel(logging.INFO)
log_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
log_file_handler.setFormatter(log_formatter)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        log_file_handler,
        UTF8StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

# Reduce werkzeug (Flask web server) logging - only show warnings and errors
logging.getLogger('werkzeug').setLevel(logging.WARNING)

# Reduce APScheduler logging - only show warnings and errors
logging.getLogger('apscheduler').setLevel(logging.WARNING)
logging.getLogger('apscheduler.executors.default').setLevel(logging.ERROR)
logging.getLogger('apscheduler.scheduler').setLevel(logging.WARNING)


# --- App Initialization ---
app = Flask(__name__)
app.config['SECRET_KEY'] = Config.SECRET_KEY
app.config['DEBUG'] = Config.DEBUG
app.config['TESTING'] = Config.TESTING
app.config['RATELIMIT_ENABLED'] = Config.RATELIMIT_ENABLED

# --- CORS: only the JSON endpoints are cross-origin ---
CORS(app, resources={r"/api/*": {"origins": "*"}})

# --- Rate Limiting: Protect against brute-force attacks ---
limiter = Limiter(
    key_func=get_remote_address,
    app=app,
    default_limits=[Config.RATE_LIMIT_API],
    storage_uri="memory://"
)

# --- Shared clients ---
backend = BackendClient(
    Config.BACKEND_URL,
    timeout=Config.BACKEND_TIMEOUT_SECONDS,
    cookie_name=Config.SESSION_COOKIE_NAME
)
search_registry = LatestRequestRegistry()

# Last result of the scheduled backend health check
last_backend_status = {"reachable": None, "status": None, "checked_at": None,
                       "message": "Not checked yet"}


# --- Security Headers Middleware ---
@app.after_request
def add_security_headers(response):
    """Add security headers to every response for production safety."""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    # Only add HSTS in production
    if not Config.DEBUG:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# --- Input Sanitization Helper ---
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_input(value):
    """
    Clean free text before it is forwarded to the backend: trim it and drop
    control characters. HTML escaping happens on output (Jinja autoescape).
    """
    if value is None:
        return None
    if isinstance(value, str):
        return _CONTROL_CHARS.sub("", value.strip())
    return value


# --- Request/Response Logging Middleware ---
@app.before_request
def log_request_info():
    """Log every incoming request with method, path, and client IP."""
    if request.path == '/api/health' or request.path.startswith('/static/'):
        return
    request._start_time = time.time()
    logger.info(f"[REQUEST] {request.method} {request.path} - Client: {request.remote_addr}")


@app.after_request
def log_response_info(response):
    """Log non-200 and slow responses."""
    if not hasattr(request, '_start_time'):
        return response
    duration = (time.time() - request._start_time) * 1000  # ms
    if response.status_code != 200 or duration > 500:
        logger.info(f"[RESPONSE] {request.method} {request.path} - Status: {response.status_code} - {duration:.0f}ms")
    return response


# --- Session Helpers ---

def session_token():
    return request.cookies.get(Config.SESSION_COOKIE_NAME)


def current_claims():
    """Verified session claims for this request, or None."""
    if 'claims' not in g:
        g.claims = read_claims(app.config['SECRET_KEY'], request.cookies.get(Config.CLAIMS_COOKIE_NAME))
    return g.claims


def claims_value(key, default=''):
    claims = current_claims()
    return (claims or {}).get(key) or default


install_route_gate(app, current_claims)


# --- Input Validation Helper ---
def validate_required_fields(data, required_fields):
    """
    Validates that form data contains all required fields and they're not empty.

    Returns:
        (is_valid, error_message) tuple
    """
    if not data:
        return False, "Please fill in all required fields"

    for field in required_fields:
        if not str(data.get(field, '')).strip():
            label = field.replace('_', ' ')
            return False, f"Please enter your {label}"

    return True, None


def validate_new_password(password, confirm):
    if password != confirm:
        return "Passwords do not match"
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    return None


def _int_arg(name, default=1):
    try:
        return max(int(request.args.get(name, default)), 1)
    except (TypeError, ValueError):
        return default


def load_view(path, model, fallback, params=None):
    """
    Fetch one page's data from the backend.

    Returns:
        (data, error_message, is_sample). On a backend failure the fallback
        builder is used when USE_FALLBACK_DATA is on; otherwise data is None.
    """
    try:
        result = backend.get(path, params=params, token=session_token(), model=model)
        return result.data, None, False
    except BackendError as e:
        if Config.USE_FALLBACK_DATA:
            logger.warning(f"[BACKEND] {path} failed, showing sample data: {e.message}")
            return fallback(), e.message, True
        return None, e.message, False


# --- Template Helpers ---

ADMIN_NAV = [
    ("Dashboard", 'admin_dashboard'),
    ("Today's Reports", 'admin_today_reports'),
    ("All Reports", 'admin_all_reports'),
    ("Weekly Report", 'admin_weekly_report'),
    ("Organized Reports", 'admin_organized_reports'),
    ("Representatives", 'admin_representatives'),
    ("Classes", 'admin_classes'),
    ("Items", 'admin_items'),
    ("Profile", 'admin_profile'),
]

STUDENT_NAV = [
    ("Dashboard", 'student_dashboard'),
    ("Submit", 'student_submit'),
    ("Report", 'student_report'),
    ("Reminder", 'student_reminder'),
    ("Profile", 'student_profile'),
]


@app.context_processor
def inject_layout():
    claims = current_claims() or {}
    section = 'admin' if request.path.startswith('/admin') else 'student'
    return {
        'claims': claims,
        'nav_items': ADMIN_NAV if section == 'admin' else STUDENT_NAV,
        'section': section,
        'sidebar_collapsed': request.cookies.get(Config.SIDEBAR_COOKIE_NAME) == 'true',
        'search_debounce_ms': Config.SEARCH_DEBOUNCE_MS,
    }


@app.template_filter('number')
def format_number(value):
    """856.0 -> '856', 12.5 -> '12.5'"""
    if isinstance(value, float) and value.is_integer():
        return f"{int(value):,}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def _set_cookie(response, name, value, max_age=None):
    response.set_cookie(name, value, max_age=max_age, httponly=True,
                        samesite='Lax', secure=not Config.DEBUG)


# =================================================================
#   Public Pages & Authentication
# =================================================================

@app.route('/')
def index():
    return render_template('home.html')


@app.route('/auth/login', methods=['GET', 'POST'])
@limiter.limit(Config.RATE_LIMIT_LOGIN, methods=['POST'])
def login():
    return_to = request.values.get('from', '')
    if request.method == 'GET':
        return render_template('auth/login.html', return_to=return_to)

    form = request.form
    is_valid, error = validate_required_fields(form, ['email', 'password'])
    if not is_valid:
        return render_template('auth/login.html', error=error, email=form.get('email', ''),
                               return_to=return_to), 400

    email = form['email'].strip()
    try:
        backend.post('/api/auth/loginUser', {'email': email, 'password': form['password']})
    except BackendError as e:
        logger.warning(f"[AUTH] Login failed for {email}: {e.message}")
        return render_template('auth/login.html', error=e.message, email=email,
                               return_to=return_to), 401

    logger.info(f"[AUTH] Credentials accepted, OTP sent - {email}")
    params = {'email': email}
    if return_to:
        params['from'] = return_to
    return redirect(url_for('verify_otp', **params))


@app.route('/auth/verify', methods=['GET', 'POST'])
@limiter.limit(Config.RATE_LIMIT_LOGIN, methods=['POST'])
def verify_otp():
    email = request.values.get('email', '').strip()
    return_to = request.values.get('from', '')
    context = {'email': email, 'return_to': return_to}

    if request.method == 'GET':
        return render_template('auth/verify.html', **context)

    if not email:
        return render_template('auth/verify.html', error="Your session has expired. Please log in again.",
                               **context), 400

    if request.form.get('action') == 'resend':
        try:
            backend.post('/api/auth/resendLoginOtp', {'email': email})
        except BackendError as e:
            return render_template('auth/verify.html', error=e.message, **context), 502
        logger.info(f"[AUTH] OTP resent - {email}")
        return render_template('auth/verify.html', notice="A new code has been sent to your email.", **context)

    otp = re.sub(r'\s', '', request.form.get('otp', ''))
    if not re.fullmatch(r'\d{6}', otp):
        return render_template('auth/verify.html', error="Please enter the 6-digit code.", **context), 400

    try:
        result = backend.post('/api/auth/verifyLoginOtp', {'email': email, 'otp': otp}, model=LoginResult)
    except BackendError as e:
        logger.warning(f"[AUTH] OTP rejected for {email}: {e.message}")
        return render_template('auth/verify.html', error=e.message, **context), 401

    if not result.login_token:
        logger.error(f"[AUTH] OTP accepted but no session cookie was issued - {email}")
        return render_template('auth/verify.html', error="Login failed: no session was issued.",
                               **context), 502

    login = result.data
    role = normalize_role(login.role)
    if Config.ENFORCE_ROLE_SECTIONS and role not in KNOWN_ROLES:
        logger.warning(f"[AUTH] Login refused, unknown role {login.role!r} - {email}")
        return render_template('auth/verify.html', error="This account has no access to NPC Smart Report.",
                               **context), 403

    claims = issue_claims(
        app.config['SECRET_KEY'],
        role,
        name=login.user.name,
        email=login.user.email or email,
        student_role=login.user.student_role,
        ttl_hours=Config.CLAIMS_TTL_HOURS
    )

    target = safe_return_path(return_to) or landing_path_for_role(role)
    response = redirect(target)
    _set_cookie(response, Config.SESSION_COOKIE_NAME, result.login_token)
    _set_cookie(response, Config.CLAIMS_COOKIE_NAME, claims, max_age=Config.CLAIMS_TTL_HOURS * 3600)
    logger.info(f"[AUTH] Login complete - {email} ({role}) -> {target}")
    return response


@app.route('/auth/signup', methods=['GET', 'POST'])
@limiter.limit(Config.RATE_LIMIT_LOGIN, methods=['POST'])
def signup():
    if request.method == 'GET':
        return render_template('auth/signup.html', form={})

    form = request.form
    is_valid, error = validate_required_fields(form, ['name', 'email', 'phone', 'password', 'confirm_password'])
    if is_valid:
        error = validate_new_password(form['password'], form['confirm_password'])
    if not error and not form.get('terms'):
        error = "You must accept the terms and conditions"
    if error:
        return render_template('auth/signup.html', error=error, form=form), 400

    payload = {
        'name': sanitize_input(form['name']),
        'email': form['email'].strip(),
        'phone': form['phone'].strip(),
        'password': form['password'],
    }
    try:
        backend.post('/api/auth/createStudent', payload)
    except BackendError as e:
        return render_template('auth/signup.html', error=e.message, form=form), 400

    logger.info(f"[AUTH] Student account created - {payload['email']}")
    return render_template('auth/signup.html', form={},
                           notice="Account created! Check your email for a verification link.")


@app.route('/auth/verify/email')
def verify_email():
    token = request.args.get('token', '').strip()
    if not token:
        return render_template('auth/verify_email.html', success=False,
                               message="Invalid verification link."), 400
    try:
        result = backend.post('/api/auth/verifySignupLink', {'token': token})
    except BackendError as e:
        return render_template('auth/verify_email.html', success=False, message=e.message), 400

    return render_template('auth/verify_email.html', success=True,
                           message=result.message or "Your email has been verified. You can now log in.")


@app.route('/auth/reset-password', methods=['GET', 'POST'])
@limiter.limit(Config.RATE_LIMIT_LOGIN, methods=['POST'])
def reset_password():
    if request.method == 'GET':
        return render_template('auth/reset_password.html')

    email = request.form.get('email', '').strip()
    if not email:
        return render_template('auth/reset_password.html', error="Please enter your email"), 400
    try:
        backend.post('/api/auth/requestPasswordReset', {'email': email})
    except BackendError as e:
        return render_template('auth/reset_password.html', error=e.message, email=email), 400

    return render_template('auth/reset_password.html',
                           notice="If that account exists, a reset link has been sent to your email.")


@app.route('/auth/reset-password/new-password', methods=['GET', 'POST'])
@limiter.limit(Config.RATE_LIMIT_LOGIN, methods=['POST'])
def new_password():
    token = request.values.get('token', '').strip()
    if not token:
        return render_template('auth/new_password.html', token='',
                               error="This reset link is invalid or has expired."), 400
    if request.method == 'GET':
        return render_template('auth/new_password.html', token=token)

    error = validate_new_password(request.form.get('password', ''), request.form.get('confirm_password', ''))
    if error:
        return render_template('auth/new_password.html', token=token, error=error), 400
    try:
        backend.post('/api/auth/resetPassword', {'token': token, 'password': request.form['password']})
    except BackendError as e:
        return render_template('auth/new_password.html', token=token, error=e.message), 400

    return render_template('auth/new_password.html', token='', done=True,
                           notice="Your password has been reset. You can now log in.")


@app.route('/logout', methods=['POST'])
def logout():
    token = session_token()
    try:
        backend.post('/api/auth/logoutUser', token=token)
    except BackendError as e:
        logger.warning(f"[AUTH] Backend logout failed, clearing cookies anyway: {e.message}")

    if token:
        search_registry.forget(token)
    response = redirect(Config.LOGIN_PATH)
    response.delete_cookie(Config.SESSION_COOKIE_NAME)
    response.delete_cookie(Config.CLAIMS_COOKIE_NAME)
    logger.info(f"[AUTH] Logged out - {claims_value('email', 'unknown')}")
    return response


@app.route('/ui/sidebar', methods=['POST'])
def toggle_sidebar():
    collapsed = request.cookies.get(Config.SIDEBAR_COOKIE_NAME) == 'true'
    target = safe_return_path(request.form.get('next')) or landing_path_for_role(claims_value('role'))
    response = redirect(target)
    response.set_cookie(Config.SIDEBAR_COOKIE_NAME, 'false' if collapsed else 'true',
                        max_age=365 * 24 * 3600, samesite='Lax')
    return response


# --- Health Check Endpoint (for monitoring and cloud deployment) ---
@app.route('/api/health', methods=['GET'])
@limiter.exempt
def health_check():
    """Server status plus the last backend health check."""
    reachable = last_backend_status.get('reachable')
    return jsonify({
        "status": "degraded" if reachable is False else "healthy",
        "version": "1.0.0",
        "environment": "production" if not Config.DEBUG else "development",
        "backend": dict(last_backend_status)
    }), 200


# =================================================================
#   ADMIN PAGES
# =================================================================

ADMIN_API = '/api/admin/dashboard'


@app.route('/admin/dashboard')
def admin_dashboard():
    data, error, is_sample = load_view(f'{ADMIN_API}/getAdminDashboardData', DashboardData,
                                       fallback_data.sample_admin_dashboard)
    chart = analytics.generate_weekly_activity_chart(data.weekly_data) if data else None
    return render_template('admin/dashboard.html', data=data, chart=chart, error=error,
                           is_sample=is_sample, backend_status=last_backend_status)


def _selected_report(reports):
    """The report named by ?report=<id>, when it is among `reports`."""
    report_id = request.args.get('report')
    if not report_id:
        return None
    return next((r for r in reports if r.id == report_id), None)


@app.route('/admin/today-reports')
def admin_today_reports():
    search = request.args.get('search', '').strip()
    status = request.args.get('status', 'all')
    data, error, is_sample = load_view(f'{ADMIN_API}/getTodayReports', TodayReportsData,
                                       lambda: TodayReportsData(reports=fallback_data.sample_today_reports()))
    reports = data.reports if data else []
    return render_template(
        'admin/today_reports.html',
        reports=analytics.filter_reports(reports, search, status),
        stats=analytics.report_stats(reports),
        selected=_selected_report(reports),
        search=search, status=status,
        error=error, is_sample=is_sample
    )


def _all_reports_query():
    sort_by = request.args.get('sortBy', 'createdAt')
    if sort_by not in analytics.SORT_FIELDS:
        sort_by = 'createdAt'
    return {
        'page': _int_arg('page'),
        'limit': Config.PAGE_SIZE,
        'search': request.args.get('search', '').strip(),
        'status': request.args.get('status', 'all'),
        'sortBy': sort_by,
        'sortOrder': 'asc' if request.args.get('sortOrder') == 'asc' else 'desc',
    }


def _backend_report_params(query):
    params = dict(query)
    if params['status'] == 'all':
        params['status'] = None
    return params


def _all_reports_page_url(query, page):
    return url_for('admin_all_reports', page=page, search=query['search'], status=query['status'],
                   sortBy=query['sortBy'], sortOrder=query['sortOrder'])


def _local_all_reports(query):
    matched = analytics.filter_reports(fallback_data.sample_reports(50), query['search'], query['status'])
    return analytics.sort_reports(matched, query['sortBy'], query['sortOrder'])


def _all_reports_view(query):
    """
    One page of the all-reports listing.

    Returns:
        (reports, pagination, stats, error, is_sample)
    """
    try:
        result = backend.get(f'{ADMIN_API}/getAllReports', params=_backend_report_params(query),
                             token=session_token(), model=AllReportsData)
        data = result.data
        return data.reports, data.pagination, data.stats, None, False
    except BackendError as e:
        if not Config.USE_FALLBACK_DATA:
            return [], Pagination(), ReportStats(), e.message, False
        logger.warning(f"[BACKEND] getAllReports failed, showing sample data: {e.message}")
        matched = _local_all_reports(query)
        page_items, pagination = analytics.paginate(matched, query['page'], Config.PAGE_SIZE)
        return (page_items, Pagination.model_validate(pagination),
                ReportStats.model_validate(analytics.report_stats(matched)), e.message, True)


@app.route('/admin/all-reports')
def admin_all_reports():
    query = _all_reports_query()
    reports, pagination, stats, error, is_sample = _all_reports_view(query)
    return render_template('admin/all_reports.html', reports=reports, pagination=pagination,
                           stats=stats, query=query, selected=_selected_report(reports),
                           page_id=new_page_id(), error=error, is_sample=is_sample)


@app.route('/admin/all-reports/data')
def admin_all_reports_data():
    """
    JSON variant for the debounced live search.

    The newest `seq` wins among searches sent from one rendered page
    (identified by `pageId`); a reload or another tab counts separately.
    """
    try:
        seq = int(request.args.get('seq', 0))
    except ValueError:
        return jsonify({'success': False, 'message': "Invalid sequence number"}), 400
    page_id = request.args.get('pageId', '')
    if not is_valid_page_id(page_id):
        return jsonify({'success': False, 'message': "Invalid page id"}), 400

    ticket = search_registry.issue(session_token(), 'all-reports', seq, page_id)
    if ticket is None:
        return jsonify({'success': False, 'superseded': True}), 409

    query = _all_reports_query()
    reports, pagination, stats, error, is_sample = _all_reports_view(query)

    if not search_registry.is_current(ticket):
        return jsonify({'success': False, 'superseded': True}), 409
    if error and not is_sample:
        return jsonify({'success': False, 'message': error}), 502

    page = pagination.current_page
    return jsonify({
        'success': True,
        'seq': seq,
        'data': {
            'reports': [r.model_dump(by_alias=True) for r in reports],
            'pagination': pagination.model_dump(by_alias=True),
            'stats': stats.model_dump(by_alias=True),
            'links': {
                'prev': _all_reports_page_url(query, page - 1) if pagination.has_prev else None,
                'next': _all_reports_page_url(query, page + 1) if pagination.has_next else None,
            },
        },
        'message': error or '',
        'sample': is_sample
    })


MAX_EXPORT_PAGES = 100


@app.route('/admin/all-reports/export')
def admin_all_reports_export():
    """Excel export of every report matching the current filters."""
    query = _all_reports_query()
    params = _backend_report_params(query)
    reports = []
    try:
        for page in range(1, MAX_EXPORT_PAGES + 1):
            data = backend.get(f'{ADMIN_API}/getAllReports', params=dict(params, page=page),
                               token=session_token(), model=AllReportsData).data
            reports.extend(data.reports)
            if not data.pagination.has_next:
                break
    except BackendError as e:
        if not Config.USE_FALLBACK_DATA:
            return render_template('error.html', code=502, message=e.message), 502
        reports = _local_all_reports(query)

    in_memory_file = exports.build_reports_workbook(reports, "All Reports")
    return send_file(
        in_memory_file,
        as_attachment=True,
        download_name=exports.export_filename("All_Reports"),
        mimetype=exports.XLSX_MIMETYPE
    )


@app.route('/admin/weekly-report')
def admin_weekly_report():
    data, error, is_sample = load_view(f'{ADMIN_API}/getWeeklyReport', WeeklyReportData,
                                       fallback_data.sample_weekly_report)
    day = request.args.get('day', '')
    day_detail = data.day_details.get(day) if (data and day) else None
    chart = None
    top_performers = []
    if data:
        chart = analytics.generate_weekly_activity_chart(
            [{'day': d.day[:3], 'count': d.reports} for d in data.daily_breakdown],
            title='Reports per day'
        )
        top_performers = analytics.rank_top_performers(data.top_performers)
    return render_template('admin/weekly_report.html', data=data, day=day, day_detail=day_detail,
                           chart=chart, top_performers=top_performers, error=error, is_sample=is_sample)


@app.route('/admin/organized-reports')
def admin_organized_reports():
    search = request.args.get('search', '').strip()
    data, error, is_sample = load_view(f'{ADMIN_API}/getOrganizedReports', OrganizedReportsData,
                                       fallback_data.sample_organized_weeks)
    weeks = data.weeks if data else []
    return render_template('admin/organized_reports.html', weeks=analytics.filter_weeks(weeks, search),
                           totals=analytics.week_totals(weeks), search=search,
                           error=error, is_sample=is_sample)


def _week_view():
    week = request.args.get('week', '').strip()
    start_date = request.args.get('startDate', '')
    end_date = request.args.get('endDate', '')
    data, error, is_sample = load_view(
        f'{ADMIN_API}/getWeekReports', WeekReportsData,
        lambda: fallback_data.sample_week_reports(week, start_date, end_date),
        params={'week': week, 'startDate': start_date, 'endDate': end_date}
    )
    return week, data, error, is_sample


@app.route('/admin/organized-reports/view')
def admin_week_reports():
    if not request.args.get('week'):
        return redirect(url_for('admin_organized_reports'))

    search = request.args.get('search', '').strip()
    status = request.args.get('status', 'all')
    week, data, error, is_sample = _week_view()
    reports = data.reports if data else []

    return render_template('admin/week_reports.html', week=week, data=data,
                           reports=analytics.filter_reports(reports, search, status),
                           selected=_selected_report(reports), search=search, status=status,
                           error=error, is_sample=is_sample)


@app.route('/admin/organized-reports/view/export')
def admin_week_reports_export():
    week, data, error, is_sample = _week_view()
    if data is None:
        return render_template('error.html', code=502, message=error), 502
    reports = analytics.filter_reports(data.reports, request.args.get('search', '').strip(),
                                       request.args.get('status', 'all'))
    in_memory_file = exports.build_reports_workbook(reports, f"Week {week}")
    return send_file(
        in_memory_file,
        as_attachment=True,
        download_name=exports.export_filename(f"Week_{week}_Reports"),
        mimetype=exports.XLSX_MIMETYPE
    )


@app.route('/admin/classes')
def admin_classes():
    search = request.args.get('search', '').strip()
    data, error, is_sample = load_view(f'{ADMIN_API}/getClasses', ClassesData, fallback_data.sample_classes)
    classes = data.classes if data else []
    return render_template('admin/classes.html', classes=analytics.filter_classes(classes, search),
                           stats=analytics.class_stats(classes), search=search,
                           error=error, is_sample=is_sample)


@app.route('/admin/items')
def admin_items():
    search = request.args.get('search', '').strip()
    category = request.args.get('category', 'all')
    data, error, is_sample = load_view(f'{ADMIN_API}/getItems', ItemsData, fallback_data.sample_items)
    items = data.items if data else []
    return render_template('admin/items.html', items=analytics.filter_items(items, search, category),
                           categories=analytics.item_categories(items), stats=analytics.item_stats(items),
                           search=search, category=category, error=error, is_sample=is_sample)


@app.route('/admin/representatives')
def admin_representatives():
    search = request.args.get('search', '').strip()
    department = request.args.get('department', 'all')
    data, error, is_sample = load_view(f'{ADMIN_API}/getRepresentatives', RepresentativesData,
                                       fallback_data.sample_representatives)
    reps = data.representatives if data else []
    return render_template('admin/representatives.html',
                           representatives=analytics.filter_representatives(reps, search, department),
                           departments=analytics.representative_departments(reps),
                           total=len(reps), search=search, department=department,
                           error=error, is_sample=is_sample)


@app.route('/admin/profile')
def admin_profile():
    data, error, is_sample = load_view(f'{ADMIN_API}/getAdminProfile', AdminProfile,
                                       fallback_data.sample_admin_profile)
    return render_template('admin/profile.html', profile=data, error=error, is_sample=is_sample)


# =================================================================
#   STUDENT PAGES
# =================================================================

STUDENT_API = '/api/student/dashboard'
REPORT_PERIODS = ('all', 'daily', 'weekly', 'monthly')


@app.route('/student/dashboard')
def student_dashboard():
    data, error, is_sample = load_view(f'{STUDENT_API}/', DashboardData, fallback_data.sample_student_dashboard)
    chart = analytics.generate_weekly_activity_chart(data.weekly_data, title='My reports this week') if data else None
    return render_template('student/dashboard.html', data=data, chart=chart, error=error, is_sample=is_sample)


@app.route('/student/report')
def student_report():
    period = request.args.get('filter', 'all')
    if period not in REPORT_PERIODS:
        period = 'all'
    search = request.args.get('search', '').strip()
    page = _int_arg('page')

    def local_reports():
        # Sample data has no real dates; only the search applies
        reports = fallback_data.sample_student_reports().reports
        if search:
            needle = search.lower()
            reports = [r for r in reports if needle in r.name.lower() or needle in r.class_name.lower()]
        page_items, pagination = analytics.paginate(reports, page, Config.PAGE_SIZE)
        return StudentReportsData(reports=page_items, pagination=Pagination.model_validate(pagination))

    data, error, is_sample = load_view(
        f'{STUDENT_API}/getReports', StudentReportsData, local_reports,
        params={'filter': period, 'search': search, 'page': page, 'limit': Config.PAGE_SIZE}
    )
    return render_template('student/report.html', data=data, period=period, periods=REPORT_PERIODS,
                           search=search, error=error, is_sample=is_sample)


def _render_student_profile(notice=None, form_error=None, status=200):
    data, error, is_sample = load_view(
        f'{STUDENT_API}/getProfile', StudentProfile,
        lambda: fallback_data.sample_student_profile(claims_value('email'))
    )
    return render_template('student/profile.html', profile=data, notice=notice, form_error=form_error,
                           error=error, is_sample=is_sample), status


@app.route('/student/profile', methods=['GET', 'POST'])
def student_profile():
    if request.method == 'GET':
        notice = None
        if request.args.get('saved') == 'profile':
            notice = "Profile updated successfully!"
        elif request.args.get('saved') == 'password':
            notice = "Password changed successfully!"
        return _render_student_profile(notice=notice)

    form = request.form
    is_valid, error = validate_required_fields(form, ['firstName', 'email'])
    if not is_valid:
        return _render_student_profile(form_error=error, status=400)

    updates = {
        'name': sanitize_input(f"{form['firstName']} {form.get('lastName', '')}".strip()),
        'email': form['email'].strip(),
        'phone': sanitize_input(form.get('phone', '')),
        'address': sanitize_input(form.get('address', '')),
    }
    try:
        backend.put('/api/student/update-profile',
                    {'userId': claims_value('email'), 'updates': updates}, token=session_token())
    except BackendError as e:
        return _render_student_profile(form_error=f"Failed to update profile: {e.message}", status=502)

    logger.info(f"[PROFILE] Updated - {claims_value('email')}")
    return redirect(url_for('student_profile', saved='profile'))


@app.route('/student/profile/password', methods=['POST'])
@limiter.limit(Config.RATE_LIMIT_LOGIN)
def student_change_password():
    form = request.form
    error = validate_new_password(form.get('new_password', ''), form.get('confirm_password', ''))
    if not error and not form.get('current_password'):
        error = "Please enter your current password"
    if error:
        return _render_student_profile(form_error=error, status=400)

    try:
        backend.post('/api/student/change-password', {
            'userId': claims_value('email'),
            'currentPassword': form['current_password'],
            'newPassword': form['new_password'],
        }, token=session_token())
    except BackendError as e:
        return _render_student_profile(form_error=f"Failed to change password: {e.message}", status=502)

    logger.info(f"[PROFILE] Password changed - {claims_value('email')}")
    return redirect(url_for('student_profile', saved='password'))


# --- Report Submission ---

EVALUATION_STATUSES = ('good', 'bad', 'flagged')


def _evaluations_from_form(form):
    """Rebuild the checklist (with the marks made so far) from the posted form."""
    evaluations = []
    for item_id in form.getlist('item_id'):
        status = form.get(f'status_{item_id}', 'pending')
        evaluations.append({
            'id': item_id,
            'name': form.get(f'name_{item_id}', ''),
            'description': form.get(f'description_{item_id}', ''),
            'status': status if status in EVALUATION_STATUSES else 'pending',
            'comment': form.get(f'comment_{item_id}', '').strip(),
        })
    return evaluations


def _blank_evaluations(catalog):
    return [{'id': item.id, 'name': item.name,
             'description': item.description or "No description provided.",
             'status': 'pending', 'comment': ''} for item in catalog.items]


def _render_submit(evaluations, general_comment='', error=None, notice=None,
                   load_error=None, is_sample=False, status=200):
    return render_template('student/submit.html', evaluations=evaluations,
                           counts=analytics.evaluation_counts(evaluations),
                           general_comment=general_comment, form_error=error, notice=notice,
                           error=load_error, is_sample=is_sample), status


def report_title(today=None):
    today = today or datetime.date.today()
    return f"Classroom Inspection Report {today.month}/{today.day}/{today.year}"


@app.route('/student/submit', methods=['GET', 'POST'])
def student_submit():
    if request.method == 'GET':
        catalog, error, is_sample = load_view('/api/item/getAllItems', CatalogData, fallback_data.sample_catalog)
        evaluations = _blank_evaluations(catalog) if catalog else []
        return _render_submit(evaluations, load_error=error, is_sample=is_sample)

    evaluations = _evaluations_from_form(request.form)
    general_comment = request.form.get('general_comment', '').strip()
    action = request.form.get('action', 'submit')

    if action == 'mark_all_good':
        for ev in evaluations:
            ev['status'] = 'good'
        return _render_submit(evaluations, general_comment)

    if action == 'clear':
        for ev in evaluations:
            ev['status'] = 'pending'
            ev['comment'] = ''
        return _render_submit(evaluations)

    if not evaluations:
        return _render_submit(evaluations, general_comment, error="There are no items to submit.", status=400)
    if analytics.unmarked_items(evaluations):
        return _render_submit(evaluations, general_comment,
                              error="Please mark all items before submitting!", status=400)

    payload = {
        'reporterEmail': claims_value('email'),
        'title': report_title(),
        'generalComment': sanitize_input(general_comment) or "Inspection completed successfully.",
        'itemEvaluated': [dict(ev, comment=sanitize_input(ev['comment'])) for ev in evaluations],
        'category': 'ONTIME',
    }
    try:
        backend.post('/api/student/report/submit', payload, token=session_token())
    except BackendError as e:
        logger.warning(f"[SUBMIT] Report rejected for {payload['reporterEmail']}: {e.message}")
        return _render_submit(evaluations, general_comment,
                              error=f"Submission failed: {e.message}", status=502)

    logger.info(f"[SUBMIT] Report submitted - {payload['reporterEmail']} - Items: {len(evaluations)}")
    for ev in evaluations:
        ev['status'] = 'pending'
        ev['comment'] = ''
    return _render_submit(evaluations,
                          notice="Report Submitted Successfully! Your inspection report has been submitted for review.")


# --- Reminders ---

@app.route('/student/reminder', methods=['GET', 'POST'])
def student_reminder():
    recipients = fallback_data.REMINDER_RECIPIENTS
    if request.method == 'GET':
        reminder_type = request.args.get('type', 'report_submission')
        if reminder_type not in email_service.REMINDER_TYPES:
            reminder_type = 'report_submission'
        template = email_service.REMINDER_TEMPLATES[reminder_type]
        return render_template('student/reminder.html', recipients=recipients, reminder_type=reminder_type,
                               subject=template['subject'], message=template['message'], selected=[])

    form = request.form
    reminder_type = form.get('reminder_type', 'general')
    subject = form.get('subject', '').strip()
    message = form.get('message', '').strip()
    selected = form.getlist('recipients')
    chosen = [r for r in recipients if r['id'] in selected]

    errors = {}
    if reminder_type not in email_service.REMINDER_TYPES:
        errors['reminder_type'] = 'Please choose a reminder type'
    if not subject:
        errors['subject'] = 'Subject is required'
    if not message:
        errors['message'] = 'Message is required'
    if not chosen:
        errors['recipients'] = 'Please select at least one recipient'

    context = {'recipients': recipients, 'reminder_type': reminder_type, 'subject': subject,
               'message': message, 'selected': selected}
    if errors:
        return render_template('student/reminder.html', errors=errors, **context), 400

    sender_name = claims_value('name', Config.SENDER_NAME)
    result = email_service.send_reminders(chosen, reminder_type, subject, message, sender_name)
    if not result['sent']:
        return render_template('student/reminder.html', form_error="The reminder could not be sent. Please try again.",
                               **context), 502

    notice = f"Your reminder has been sent to {len(result['sent'])} recipient(s)"
    return render_template('student/reminder.html', notice=notice, failed=result['failed'],
                           recipients=recipients, reminder_type='report_submission',
                           subject='', message='', selected=[])


# =================================================================
#   Error Pages
# =================================================================

@app.errorhandler(404)
def not_found(e):
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'message': 'Not found'}), 404
    return render_template('error.html', code=404, message="The page you are looking for does not exist."), 404


@app.errorhandler(429)
def rate_limited(e):
    return render_template('error.html', code=429, message="Too many attempts. Please wait a minute and try again."), 429


@app.errorhandler(500)
def internal_error(e):
    original = getattr(e, 'original_exception', None)
    logger.error(f"Unhandled error on {request.method} {request.path}: {original or e}", exc_info=original)
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'message': 'Internal Server Error'}), 500
    return render_template('error.html', code=500, message="Something went wrong. Please try again."), 500


# =================================================================
#   SCHEDULED TASKS
# =================================================================

def check_backend_health():
    """Record the backend's health for the dashboard and /api/health."""
    result = backend.check_health()
    was_reachable = last_backend_status.get('reachable')
    last_backend_status.update(result)
    if not result['reachable'] and was_reachable is not False:
        logger.warning(f"[HEALTH] Backend unreachable: {result['message']}")
    elif result['reachable'] and was_reachable is False:
        logger.info("[HEALTH] Backend reachable again")


scheduler = None
if not Config.TESTING and Config.BACKEND_HEALTH_INTERVAL_SECONDS > 0:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=check_backend_health,
        trigger="interval",
        seconds=Config.BACKEND_HEALTH_INTERVAL_SECONDS,
        next_run_time=datetime.datetime.now(),
        id='check_backend_health',
        name='Check backend health',
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Server started - Backend health check every {Config.BACKEND_HEALTH_INTERVAL_SECONDS}s")

    # Ensure scheduler shuts down when app exits
    atexit.register(lambda: scheduler.shutdown())


# =================================================================
#   Server Startup
# =================================================================

if __name__ == '__main__':
    # host='0.0.0.0' makes the server accessible from other devices on your network
    app.run(host=Config.HOST, port=Config.PORT, debug=False, use_reloader=False, request_handler=TimedRequestHandler)
