"""
Sample datasets shown when the backend cannot be reached.

Each builder returns a fresh model instance so pages can filter and
mutate freely. The data goes through the same schemas as live responses.
"""
import datetime

from schemas import (
    AdminProfile,
    CatalogData,
    ClassesData,
    DashboardData,
    ItemsData,
    OrganizedReportsData,
    Report,
    RepresentativesData,
    StudentProfile,
    StudentReportsData,
    WeekReportsData,
    WeeklyReportData,
)

CLASSES = ['Computer Science', 'Engineering', 'Chemistry', 'Physics']
REPRESENTATIVES = ['John Doe', 'Jane Smith', 'Mike Johnson', 'Sarah Williams', 'Tom Brown']
CHECKLIST = [
    ('Fire Extinguisher', 'Check if fire extinguisher is accessible and not expired', 'Safety Equipment'),
    ('Emergency Exit Signs', 'Verify all emergency exit signs are illuminated', 'Safety Equipment'),
    ('Window Glass', 'Inspect all windows for cracks or damage', 'Infrastructure'),
    ('Floor Condition', 'Check for spills, cracks, or trip hazards', 'Infrastructure'),
    ('Electrical Outlets', 'Ensure all outlets are functioning and properly covered', 'Electrical'),
    ('First Aid Kit', 'Verify first aid kit is stocked and accessible', 'Safety Equipment'),
    ('Ventilation System', 'Ensure ventilation is working properly', 'HVAC'),
    ('Lighting', 'Verify all lights are functioning', 'Electrical'),
]
WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

# Directory offered on the reminder page
REMINDER_RECIPIENTS = [
    {'id': str(i + 1), 'name': name, 'email': name.lower().replace(' ', '.') + '@example.com'}
    for i, name in enumerate(REPRESENTATIVES + ['Emily Davis'])
]


def sample_reports(count=50):
    """A spread of reports across classes, statuses and the last 30 days."""
    base = datetime.datetime(2024, 10, 30, 8, 0)
    reports = []
    for i in range(count):
        created = base - datetime.timedelta(days=i % 30, minutes=(i % 12) * 45)
        flagged = 2 if i % 5 == 0 else 0
        reports.append(Report.model_validate({
            "id": f"sample-{i + 1}",
            "title": f"Safety Report #{i + 1}",
            "representative": REPRESENTATIVES[i % len(REPRESENTATIVES)],
            "class": CLASSES[i % len(CLASSES)],
            "status": ('pending', 'approved', 'rejected')[i % 3],
            "date": created.strftime('%Y-%m-%d'),
            "time": created.strftime('%I:%M %p'),
            "itemsChecked": len(CHECKLIST),
            "totalItems": len(CHECKLIST),
            "flaggedItems": flagged,
            "items": [
                {"name": name, "status": 'flagged' if j < flagged else 'good', "comment": ''}
                for j, (name, _, _) in enumerate(CHECKLIST)
            ],
            "rawData": {"createdAt": created.isoformat()}
        }))
    return reports


def sample_today_reports():
    return sample_reports(5)


def sample_admin_dashboard():
    return DashboardData.model_validate({
        "stats": [
            {"title": "Total Students", "value": 856, "trend": 12.5},
            {"title": "Representatives", "value": 45, "trend": 5.3},
            {"title": "Total Classes", "value": 32, "trend": 0},
            {"title": "Total Reports", "value": 1248, "trend": 18.7},
        ],
        "activities": [
            {"id": 1, "type": "submitted", "title": "Safety Inspection - Room A101",
             "time": "5 minutes ago", "user": "John Doe"},
            {"id": 2, "type": "approved", "title": "Facility Check - Engineering Lab",
             "time": "1 hour ago", "user": "Jane Smith"},
            {"id": 3, "type": "pending", "title": "Safety Review - Chemistry Lab",
             "time": "2 hours ago", "user": "Mike Johnson"},
        ],
        "recentReports": [
            {"id": r.id, "title": r.title, "status": r.status, "date": r.date,
             "representative": r.representative, "class": r.class_name}
            for r in sample_reports(4)
        ],
        "weeklyData": [
            {"day": d[:3], "count": c}
            for d, c in zip(WEEKDAYS, (42, 58, 45, 67, 52, 28, 15))
        ]
    })


def sample_student_dashboard():
    return DashboardData.model_validate({
        "stats": [
            {"title": "Total Reports", "value": 24, "trend": 12.5},
            {"title": "Approved", "value": 18, "trend": 8.2},
            {"title": "Pending", "value": 4, "trend": 0},
            {"title": "This Week", "value": 3, "trend": 15.3},
        ],
        "recentReports": [
            {"id": r.id, "title": r.title, "status": r.status, "date": r.date, "class": r.class_name}
            for r in sample_reports(4)
        ],
        "weeklyData": [
            {"day": d[:3], "count": c}
            for d, c in zip(WEEKDAYS, (1, 1, 0, 1, 0, 0, 0))
        ]
    })


def sample_classes():
    rows = [
        ('Computer Science Year 3', 'Engineering', 3, 45, 3, 12, 'Building A - Room 301'),
        ('Engineering Year 2', 'Engineering', 2, 52, 4, 15, 'Building B - Room 205'),
        ('Chemistry Year 4', 'Science', 4, 38, 2, 8, 'Building C - Lab 401'),
        ('Physics Year 3', 'Science', 3, 41, 3, 11, 'Building C - Room 302'),
        ('Business Studies Year 1', 'Business', 1, 55, 4, 14, 'Building D - Room 101'),
    ]
    return ClassesData.model_validate({"classes": [
        {"id": i + 1, "name": n, "department": d, "year": y, "totalStudents": s,
         "representatives": r, "reportsThisWeek": w, "room": room, "status": "active"}
        for i, (n, d, y, s, r, w, room) in enumerate(rows)
    ]})


def sample_items():
    return ItemsData.model_validate({"items": [
        {"id": i + 1, "name": name, "description": desc, "category": category,
         "mandatory": True, "usageCount": 1248, "goodCount": 1150 + (i * 7) % 40,
         "badCount": 40 + (i * 5) % 30, "flaggedCount": 20 + (i * 3) % 15}
        for i, (name, desc, category) in enumerate(CHECKLIST)
    ]})


def sample_catalog():
    return CatalogData.model_validate({"items": [
        {"id": i + 1, "name": name, "description": desc}
        for i, (name, desc, _) in enumerate(CHECKLIST)
    ]})


def sample_representatives():
    departments = ['Computer Science', 'Engineering', 'Chemistry', 'Physics', 'Computer Science']
    return RepresentativesData.model_validate({"representatives": [
        {"id": i + 1, "name": name,
         "email": name.lower().replace(' ', '.') + '@edu.com',
         "phone": f"+1 555-01{i + 1:02d}", "class": f"Year {3 - i % 2}",
         "department": departments[i], "reportsSubmitted": 24 - i * 2,
         "avgCompletionRate": 98 - i, "status": "active"}
        for i, name in enumerate(REPRESENTATIVES)
    ]})


def sample_organized_weeks():
    end = datetime.date(2024, 10, 30)
    weeks = []
    for i in range(8):
        week_end = end - datetime.timedelta(weeks=i)
        week_start = week_end - datetime.timedelta(days=6)
        total = 115 + (i * 7) % 18
        flagged = 4 + i % 5
        pending = 10 + i % 6
        weeks.append({
            "weekNumber": 44 - i,
            "startDate": week_start.strftime('%b %d'),
            "endDate": week_end.strftime('%b %d, %Y'),
            "totalReports": total,
            "approved": total - flagged - pending,
            "pending": pending,
            "flagged": flagged,
            "representatives": 41 + i % 5
        })
    return OrganizedReportsData.model_validate({"weeks": weeks})


def sample_week_reports(week_number, start_date=None, end_date=None):
    reports = sample_reports(6)
    return WeekReportsData.model_validate({
        "reports": [r.model_dump(by_alias=True) for r in reports],
        "stats": {
            "total": len(reports),
            "approved": sum(1 for r in reports if r.status == 'approved'),
            "pending": sum(1 for r in reports if r.status == 'pending'),
            "rejected": sum(1 for r in reports if r.status == 'rejected'),
        },
        "weekInfo": {
            "weekNumber": str(week_number),
            "startDate": start_date or 'Oct 24',
            "endDate": end_date or 'Oct 30, 2024',
            "totalReports": len(reports)
        }
    })


def sample_weekly_report():
    breakdown = [(18, 3, 15), (22, 5, 17), (19, 4, 15), (25, 6, 19), (21, 3, 18), (12, 1, 11), (10, 1, 9)]
    return WeeklyReportData.model_validate({
        "weekStats": {"totalReports": 127, "totalRepresentatives": 45, "flaggedItems": 23,
                      "resolvedIssues": 18, "trend": 12.5},
        "dailyBreakdown": [
            {"day": day, "reports": r, "flagged": f, "approved": a}
            for day, (r, f, a) in zip(WEEKDAYS, breakdown)
        ],
        "dayDetails": {
            day: {
                "good": {"count": a * 3, "items": [{"name": n, "class": c}
                                                   for n, c in zip(REPRESENTATIVES[:3], CLASSES)]},
                "bad": {"count": r - a, "items": [{"name": REPRESENTATIVES[3], "class": CLASSES[3]}]},
                "flagged": {"count": f, "items": [{"name": REPRESENTATIVES[4], "class": CLASSES[0]}]},
            }
            for day, (r, f, a) in zip(WEEKDAYS, breakdown)
        },
        "topPerformers": [
            {"name": 'John Doe', "class": 'Computer Science', "reports": 7, "completion": 100},
            {"name": 'Jane Smith', "class": 'Engineering', "reports": 6, "completion": 100},
            {"name": 'Mike Johnson', "class": 'Chemistry', "reports": 5, "completion": 98},
        ]
    })


def sample_admin_profile():
    return AdminProfile.model_validate({
        "firstName": "Admin", "lastName": "User", "email": "admin@npc.edu",
        "phone": "+1 (555) 999-0000", "adminId": "ADM-2024-001",
        "role": "System Administrator", "department": "Administration",
        "joinDate": "January 2022", "address": "Admin Office, Main Campus",
        "statistics": [
            {"label": "Total Reports Reviewed", "value": "1,248", "icon": "FileText"},
            {"label": "Active Students", "value": "856", "icon": "Users"},
            {"label": "Representatives", "value": "45", "icon": "Shield"},
        ]
    })


def sample_student_profile(email=''):
    return StudentProfile.model_validate({
        "firstName": "Student", "lastName": "", "email": email or "student@npc.edu",
        "statistics": [
            {"label": "Reports Submitted", "value": "24", "icon": "FileText"},
            {"label": "Approved", "value": "18", "icon": "CheckCircle"},
        ]
    })


def sample_student_reports():
    reports = sample_reports(12)
    return StudentReportsData.model_validate({"reports": [
        {"id": r.id, "name": r.title, "submissionDate": r.date,
         "csApproved": r.status == 'approved', "cpApproved": r.status == 'approved',
         "status": r.status, "class": r.class_name}
        for r in reports
    ]})
