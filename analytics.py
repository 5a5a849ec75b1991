import math
import io
import base64
import logging

# Matplotlib configuration for server-side rendering (no GUI)
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)

REPORT_STATUSES = ('pending', 'approved', 'rejected')
SORT_FIELDS = ('createdAt', 'title', 'class')


def round_half_up(value):
    """Round to the nearest integer, .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def _contains(needle, *haystacks):
    needle = needle.lower()
    return any(needle in (h or '').lower() for h in haystacks)


# =============================================================================
#   Report Listings
# =============================================================================

def filter_reports(reports, search='', status='all'):
    """
    Filter reports by status and a case-insensitive search term.

    The search matches the title, the representative or the class name.
    A status of 'all' (or empty) keeps every status.
    """
    result = reports
    if status and status != 'all':
        result = [r for r in result if r.status == status]
    if search:
        result = [r for r in result if _contains(search, r.title, r.representative, r.class_name)]
    return list(result)


def sort_reports(reports, sort_by='createdAt', sort_order='desc'):
    """Sort reports by creation time, title or class."""
    if sort_by == 'title':
        key = lambda r: r.title.lower()
    elif sort_by == 'class':
        key = lambda r: r.class_name.lower()
    else:
        key = lambda r: r.created_at or ''
    return sorted(reports, key=key, reverse=(sort_order != 'asc'))


def paginate(items, page=1, per_page=10):
    """
    Slice one page out of a list.

    The page number is clamped into [1, total_pages]; an empty list still
    has one (empty) page.

    Returns:
        tuple: (page_items, pagination dict with currentPage, totalPages,
        totalCount, hasNext, hasPrev)
    """
    total = len(items)
    total_pages = max(1, math.ceil(total / per_page)) if per_page > 0 else 1
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = min(max(page, 1), total_pages)

    start = (page - 1) * per_page
    page_items = items[start:start + per_page]
    return page_items, {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total,
        "hasNext": page < total_pages,
        "hasPrev": page > 1
    }


def report_stats(reports):
    """Counts per status plus the number of flagged items across reports."""
    stats = {"total": len(reports), "flagged": 0}
    for status in REPORT_STATUSES:
        stats[status] = 0
    for r in reports:
        if r.status in stats:
            stats[r.status] += 1
        stats["flagged"] += r.flagged_items
    return stats


# =============================================================================
#   Classes, Items, Representatives, Weeks
# =============================================================================

def filter_classes(classes, search=''):
    if not search:
        return list(classes)
    return [c for c in classes if _contains(search, c.name, c.department)]


def class_stats(classes):
    return {
        "totalClasses": len(classes),
        "totalStudents": sum(c.total_students for c in classes),
        "totalRepresentatives": sum(c.representatives for c in classes),
        "reportsThisWeek": sum(c.reports_this_week for c in classes)
    }


def item_categories(items):
    """'all' followed by each distinct category in first-seen order."""
    categories = ['all']
    for item in items:
        if item.category not in categories:
            categories.append(item.category)
    return categories


def filter_items(items, search='', category='all'):
    result = items
    if category and category != 'all':
        result = [i for i in result if i.category == category]
    if search:
        result = [i for i in result if _contains(search, i.name, i.description)]
    return list(result)


def item_stats(items):
    """
    Totals for the inspection item catalogue.

    avgGoodRate is the mean of each item's good/usage percentage, rounded
    half-up. Items never used count as 0%.
    """
    if not items:
        return {"totalItems": 0, "mandatory": 0, "totalUsage": 0, "avgGoodRate": 0}

    rates = [(i.good_count / i.usage_count * 100) if i.usage_count else 0.0 for i in items]
    return {
        "totalItems": len(items),
        "mandatory": sum(1 for i in items if i.mandatory),
        "totalUsage": sum(i.usage_count for i in items),
        "avgGoodRate": round_half_up(sum(rates) / len(items))
    }


def representative_departments(representatives):
    departments = ['all']
    for rep in representatives:
        if rep.department not in departments:
            departments.append(rep.department)
    return departments


def filter_representatives(representatives, search='', department='all'):
    result = representatives
    if department and department != 'all':
        result = [r for r in result if r.department == department]
    if search:
        result = [r for r in result if _contains(search, r.name, r.email)]
    return list(result)


def filter_weeks(weeks, search=''):
    """Match the search against start date, end date or 'week <n>'."""
    if not search:
        return list(weeks)
    return [w for w in weeks
            if _contains(search, w.start_date, w.end_date, f"week {w.week_number}")]


def week_totals(weeks):
    total_reports = sum(w.total_reports for w in weeks)
    return {
        "weeks": len(weeks),
        "totalReports": total_reports,
        "avgReports": round_half_up(total_reports / len(weeks)) if weeks else 0,
        "totalFlagged": sum(w.flagged for w in weeks)
    }


def rank_top_performers(performers, limit=3):
    """Most reports first, completion rate breaks ties."""
    ranked = sorted(performers, key=lambda p: (-p.reports, -p.completion, p.name))
    return ranked[:limit]


# =============================================================================
#   Report Submission
# =============================================================================

def evaluation_counts(evaluations):
    """
    Count item evaluations per status.

    Args:
        evaluations: List of dicts with a 'status' key
            ('good', 'bad', 'flagged' or 'pending').
    """
    counts = {"good": 0, "bad": 0, "flagged": 0, "pending": 0}
    for ev in evaluations:
        status = ev.get('status') or 'pending'
        counts[status] = counts.get(status, 0) + 1
    return counts


def unmarked_items(evaluations):
    """Names of items still waiting for a good/bad/flagged mark."""
    return [ev.get('name', '') for ev in evaluations
            if (ev.get('status') or 'pending') == 'pending']


# =============================================================================
#   Charts
# =============================================================================

def generate_weekly_activity_chart(weekly_data, title='Reports this week'):
    """
    Generates a base64-encoded PNG bar chart of reports per weekday.

    Args:
        weekly_data: List of objects (or dicts) with 'day' and 'count'.

    Returns:
        str: Base64-encoded PNG image data URI, or None if no data
    """
    if not weekly_data:
        return None

    days = []
    counts = []
    for entry in weekly_data:
        day = entry.get('day') if isinstance(entry, dict) else entry.day
        count = entry.get('count') if isinstance(entry, dict) else entry.count
        days.append(str(day))
        counts.append(count or 0)

    fig = None
    try:
        fig, ax = plt.subplots(figsize=(8, 3.5), dpi=100)
        fig.patch.set_facecolor('#ffffff')
        ax.set_facecolor('#f7fafc')

        bars = ax.bar(days, counts, color='#3b82f6', edgecolor='#2563eb', width=0.6)
        peak = max(counts) if counts else 0
        for bar, count in zip(bars, counts):
            if count == peak and peak > 0:
                bar.set_color('#8b5cf6')

        ax.set_title(title, color='#1a202c', fontsize=12, loc='left')
        ax.set_ylabel('Reports', color='#4a5568', fontsize=10)
        ax.tick_params(colors='#718096', labelsize=9)
        ax.set_ylim(0, max(peak * 1.2, 1))

        ax.grid(True, axis='y', alpha=0.3, color='#cbd5e0')
        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)
        ax.spines['left'].set_color('#e2e8f0')
        ax.spines['bottom'].set_color('#e2e8f0')

        plt.tight_layout()

        buffer = io.BytesIO()
        fig.savefig(buffer, format='png', facecolor=fig.get_facecolor(), edgecolor='none')
        buffer.seek(0)
        image_base64 = base64.b64encode(buffer.read()).decode('utf-8')
        return f"data:image/png;base64,{image_base64}"

    except (ValueError, TypeError) as e:
        logger.error(f"Error generating weekly chart: {e}")
        return None
    finally:
        if fig is not None:
            plt.close(fig)
