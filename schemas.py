"""
Backend payload schemas.

Every response from the NPC Smart Report API is parsed into one of these
models before a page touches it. Field names follow the backend's camelCase
through aliases; unknown fields are ignored, missing required fields reject
the payload.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


# Ids and display values arrive as numbers or strings depending on the endpoint.
LooseStr = Annotated[str, BeforeValidator(lambda v: v if v is None else str(v))]


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class Envelope(ApiModel):
    """The {success, data, message} wrapper every endpoint returns."""
    success: bool
    data: Any = None
    message: str = ''


# =================================================================
#   Reports
# =================================================================

ReportStatus = Literal['pending', 'approved', 'rejected']
ItemStatus = Literal['good', 'bad', 'flagged']


class Pagination(ApiModel):
    current_page: int = Field(1, alias='currentPage')
    total_pages: int = Field(1, alias='totalPages')
    total_count: int = Field(0, alias='totalCount')
    has_next: bool = Field(False, alias='hasNext')
    has_prev: bool = Field(False, alias='hasPrev')


class ReportStats(ApiModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class ReportItem(ApiModel):
    name: str
    status: ItemStatus
    comment: str = ''


class ReportRawData(ApiModel):
    general_comment: Optional[str] = Field(None, alias='generalComment')
    created_at: Optional[str] = Field(None, alias='createdAt')
    updated_at: Optional[str] = Field(None, alias='updatedAt')


class Report(ApiModel):
    id: LooseStr
    title: str
    representative: str
    class_name: str = Field(alias='class')
    status: ReportStatus
    date: str = ''
    time: str = ''
    items_checked: int = Field(0, alias='itemsChecked')
    total_items: int = Field(0, alias='totalItems')
    flagged_items: int = Field(0, alias='flaggedItems')
    items: List[ReportItem] = Field(default_factory=list)
    raw_data: Optional[ReportRawData] = Field(None, alias='rawData')

    @property
    def created_at(self):
        if self.raw_data and self.raw_data.created_at:
            return self.raw_data.created_at
        return self.date


class AllReportsData(ApiModel):
    reports: List[Report]
    pagination: Pagination = Field(default_factory=Pagination)
    stats: ReportStats = Field(default_factory=ReportStats)


class TodayReportsData(ApiModel):
    reports: List[Report]


# =================================================================
#   Weeks
# =================================================================

class WeekSummary(ApiModel):
    week_number: int = Field(alias='weekNumber')
    start_date: str = Field(alias='startDate')
    end_date: str = Field(alias='endDate')
    total_reports: int = Field(0, alias='totalReports')
    approved: int = 0
    pending: int = 0
    flagged: int = 0
    representatives: int = 0


class OrganizedReportsData(ApiModel):
    weeks: List[WeekSummary]


class WeekInfo(ApiModel):
    week_number: str = Field(alias='weekNumber')
    start_date: str = Field('', alias='startDate')
    end_date: str = Field('', alias='endDate')
    total_reports: int = Field(0, alias='totalReports')


class WeekReportsData(ApiModel):
    reports: List[Report]
    stats: ReportStats = Field(default_factory=ReportStats)
    week_info: WeekInfo = Field(alias='weekInfo')


class WeekStats(ApiModel):
    total_reports: int = Field(0, alias='totalReports')
    total_representatives: int = Field(0, alias='totalRepresentatives')
    flagged_items: int = Field(0, alias='flaggedItems')
    resolved_issues: int = Field(0, alias='resolvedIssues')
    trend: float = 0.0


class DailyBreakdown(ApiModel):
    day: str
    reports: int = 0
    flagged: int = 0
    approved: int = 0


class DayPerson(ApiModel):
    name: str
    class_name: str = Field('', alias='class')


class DayBucket(ApiModel):
    count: int = 0
    items: List[DayPerson] = Field(default_factory=list)


class DayDetail(ApiModel):
    good: DayBucket = Field(default_factory=DayBucket)
    bad: DayBucket = Field(default_factory=DayBucket)
    flagged: DayBucket = Field(default_factory=DayBucket)


class TopPerformer(ApiModel):
    name: str
    class_name: str = Field('', alias='class')
    reports: int = 0
    completion: float = 0.0


class WeeklyReportData(ApiModel):
    week_stats: WeekStats = Field(alias='weekStats')
    daily_breakdown: List[DailyBreakdown] = Field(alias='dailyBreakdown')
    day_details: Dict[str, DayDetail] = Field(default_factory=dict, alias='dayDetails')
    top_performers: List[TopPerformer] = Field(default_factory=list, alias='topPerformers')


# =================================================================
#   Classes, items, representatives
# =================================================================

class ClassInfo(ApiModel):
    id: int
    name: str
    department: str
    year: int = 0
    total_students: int = Field(0, alias='totalStudents')
    representatives: int = 0
    reports_this_week: int = Field(0, alias='reportsThisWeek')
    room: str = ''
    status: Literal['active', 'inactive'] = 'active'


class ClassesData(ApiModel):
    classes: List[ClassInfo]


class InspectionItem(ApiModel):
    id: int
    name: str
    description: str = ''
    category: str
    mandatory: bool = False
    usage_count: int = Field(0, alias='usageCount')
    good_count: int = Field(0, alias='goodCount')
    bad_count: int = Field(0, alias='badCount')
    flagged_count: int = Field(0, alias='flaggedCount')


class ItemsData(ApiModel):
    items: List[InspectionItem]


class Representative(ApiModel):
    id: int
    name: str
    email: str
    phone: str = ''
    class_name: str = Field('', alias='class')
    department: str
    reports_submitted: int = Field(0, alias='reportsSubmitted')
    avg_completion_rate: float = Field(0.0, alias='avgCompletionRate')
    status: Literal['active', 'inactive'] = 'active'


class RepresentativesData(ApiModel):
    representatives: List[Representative]


# =================================================================
#   Dashboards and profiles
# =================================================================

class StatCard(ApiModel):
    title: str
    value: float
    trend: float = 0.0


class ActivityItem(ApiModel):
    id: int
    type: Literal['submitted', 'approved', 'pending']
    title: str
    time: str
    user: Optional[str] = None


class RecentReport(ApiModel):
    id: LooseStr
    title: str
    status: str
    date: str
    representative: Optional[str] = None
    class_name: str = Field('', alias='class')


class WeeklyCount(ApiModel):
    day: str
    count: int


class DashboardData(ApiModel):
    stats: List[StatCard]
    activities: List[ActivityItem] = Field(default_factory=list)
    recent_reports: List[RecentReport] = Field(default_factory=list, alias='recentReports')
    weekly_data: List[WeeklyCount] = Field(default_factory=list, alias='weeklyData')


class ProfileStat(ApiModel):
    label: str
    value: LooseStr
    icon: str = ''


class AdminProfile(ApiModel):
    first_name: str = Field(alias='firstName')
    last_name: str = Field('', alias='lastName')
    email: str
    phone: str = ''
    admin_id: str = Field('', alias='adminId')
    role: str = ''
    department: str = ''
    join_date: str = Field('', alias='joinDate')
    address: str = ''
    statistics: List[ProfileStat] = Field(default_factory=list)


class StudentProfile(ApiModel):
    first_name: str = Field(alias='firstName')
    last_name: str = Field('', alias='lastName')
    email: str
    phone: str = ''
    student_id: str = Field('', alias='studentId')
    class_name: str = Field('', alias='class')
    department: str = ''
    address: str = ''
    statistics: List[ProfileStat] = Field(default_factory=list)


class StudentReport(ApiModel):
    id: LooseStr
    name: str
    submission_date: str = Field(alias='submissionDate')
    cs_approved: bool = Field(False, alias='csApproved')
    cp_approved: bool = Field(False, alias='cpApproved')
    status: ReportStatus
    class_name: str = Field('', alias='class')
    general_comment: Optional[str] = Field(None, alias='generalComment')


class StudentReportsData(ApiModel):
    reports: List[StudentReport]
    pagination: Pagination = Field(default_factory=Pagination)


# =================================================================
#   Auth and submission
# =================================================================

class AuthUser(ApiModel):
    name: str = ''
    email: str = ''
    student_role: Optional[str] = Field(None, alias='studentRole')


class LoginResult(ApiModel):
    role: str
    user: AuthUser = Field(default_factory=AuthUser)


class CatalogItem(ApiModel):
    id: LooseStr
    name: str
    description: str = ''


class CatalogData(ApiModel):
    items: List[CatalogItem]
