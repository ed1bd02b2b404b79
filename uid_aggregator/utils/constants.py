"""
Constants for the UID Aggregator.

This module contains all string identifiers, keyword tables, field-name
priority lists and tunables used throughout the application. Centralizing
these makes the heuristics easier to audit and tune.
"""

from typing import Dict, List, Optional, Set, Tuple


# =============================================================================
# DATA KINDS
# =============================================================================

KIND_FRIENDS = "friends"
KIND_GROUPS = "groups"
KIND_POSTS = "posts"
KIND_COMMENTS = "comments"
KIND_GROUP_POSTS = "group_posts"
KIND_GROUP_COMMENTS = "group_comments"
KIND_PAGE_COMMENTS = "page_comments"
KIND_PAGES_LIKED = "pages_liked"
KIND_CHECK_INS = "check_ins"
KIND_EVENTS = "events"
KIND_INTERACTIONS = "interactions"
KIND_PROFILES = "profiles"
KIND_MESSAGES = "messages"
KIND_PHOTOS = "photos"
KIND_VIDEOS = "videos"
KIND_REACTIONS = "reactions"
KIND_UNKNOWN = "unknown"

VALID_KINDS: Set[str] = {
    KIND_FRIENDS,
    KIND_GROUPS,
    KIND_POSTS,
    KIND_COMMENTS,
    KIND_GROUP_POSTS,
    KIND_GROUP_COMMENTS,
    KIND_PAGE_COMMENTS,
    KIND_PAGES_LIKED,
    KIND_CHECK_INS,
    KIND_EVENTS,
    KIND_INTERACTIONS,
    KIND_PROFILES,
    KIND_MESSAGES,
    KIND_PHOTOS,
    KIND_VIDEOS,
    KIND_REACTIONS,
    KIND_UNKNOWN,
}

# Labels shown next to each kind in the upload list
KIND_LABELS: Dict[str, str] = {
    KIND_FRIENDS: "Danh sách bạn bè",
    KIND_GROUPS: "Danh sách nhóm",
    KIND_POSTS: "Danh sách bài đăng",
    KIND_GROUP_POSTS: "Bài đăng trên nhóm",
    KIND_COMMENTS: "Bình luận trên tường",
    KIND_GROUP_COMMENTS: "Bình luận trên nhóm",
    KIND_PAGE_COMMENTS: "Bình luận trên trang",
    KIND_PAGES_LIKED: "Danh sách trang đã thích",
    KIND_CHECK_INS: "Danh sách địa điểm đã check-in",
    KIND_EVENTS: "Sự kiện đã tham gia",
    KIND_INTERACTIONS: "Tương tác với người dùng khác",
    KIND_PROFILES: "Thông tin hồ sơ người dùng",
    KIND_MESSAGES: "Tin nhắn và cuộc trò chuyện",
    KIND_PHOTOS: "Ảnh đã đăng",
    KIND_VIDEOS: "Video đã đăng",
    KIND_REACTIONS: "Các biểu cảm (reaction)",
    KIND_UNKNOWN: "Không xác định",
}


# =============================================================================
# SOURCE TYPES (what subject a file describes)
# =============================================================================

SOURCE_UID_PROFILE = "uid_profile"
SOURCE_PAGE = "page"
SOURCE_GROUP = "group"

VALID_SOURCE_TYPES: Set[str] = {SOURCE_UID_PROFILE, SOURCE_PAGE, SOURCE_GROUP}

SOURCE_TYPE_LABELS: Dict[str, str] = {
    SOURCE_UID_PROFILE: "Hồ sơ người dùng",
    SOURCE_PAGE: "Trang",
    SOURCE_GROUP: "Nhóm",
}


# =============================================================================
# PROFILE BUCKETS
# =============================================================================
# Kinds that own a bucket (and therefore a counter) on an aggregated profile.
# Kinds missing from this map are never counted.

BUCKET_FOR_KIND: Dict[str, str] = {
    KIND_FRIENDS: "friends",
    KIND_GROUPS: "groups",
    KIND_POSTS: "posts",
    KIND_COMMENTS: "comments",
    KIND_PAGES_LIKED: "pages_liked",
    KIND_CHECK_INS: "check_ins",
    KIND_EVENTS: "events",
    KIND_INTERACTIONS: "interactions",
}

# The six buckets that feed dashboard totals and activity sums
CORE_BUCKETS: Tuple[str, ...] = (
    "friends",
    "groups",
    "posts",
    "comments",
    "pages_liked",
    "check_ins",
)

ALL_BUCKETS: Tuple[str, ...] = CORE_BUCKETS + ("events", "interactions")


# =============================================================================
# CLASSIFICATION KEYWORDS
# =============================================================================
# Each rule is (kind, keywords). Order matters: first match wins.

FILE_NAME_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    (KIND_FRIENDS, ("friend", "bạn")),
    (KIND_GROUPS, ("group", "nhóm")),
    (KIND_POSTS, ("post", "bài")),
    (KIND_COMMENTS, ("comment", "bình luận")),
    (KIND_PAGES_LIKED, ("page", "trang")),
    (KIND_CHECK_INS, ("check", "location", "địa điểm")),
    (KIND_PROFILES, ("profile", "hồ sơ")),
    (KIND_MESSAGES, ("message", "tin nhắn")),
    (KIND_PHOTOS, ("photo", "ảnh")),
    (KIND_VIDEOS, ("video",)),
    (KIND_EVENTS, ("event", "sự kiện")),
    (KIND_REACTIONS, ("reaction", "biểu cảm")),
]

HEADER_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    (KIND_FRIENDS, ("friend", "bạn")),
    (KIND_GROUPS, ("group", "nhóm")),
    (KIND_POSTS, ("post", "bài")),
    (KIND_COMMENTS, ("comment", "bình luận")),
    (KIND_PAGES_LIKED, ("page", "trang")),
    (KIND_CHECK_INS, ("check", "địa điểm")),
]


# =============================================================================
# FIELD EXTRACTION
# =============================================================================

UID_FIELDS: Tuple[str, ...] = ("uid", "user_id", "id", "facebook_id", "fb_id")

UID_FIELDS_BY_KIND: Dict[str, Tuple[str, ...]] = {
    KIND_FRIENDS: ("friend_id",),
    KIND_COMMENTS: ("commenter_id",),
    KIND_POSTS: ("poster_id", "author_id"),
}

# Substring that marks a column as id-like in the last-resort scan
ID_KEY_MARKER = "id"

NAME_FIELDS: Tuple[str, ...] = ("name", "user_name", "full_name", "display_name")

NAME_FIELDS_BY_KIND: Dict[str, Tuple[str, ...]] = {
    KIND_FRIENDS: ("friend_name",),
    KIND_COMMENTS: ("commenter_name",),
    KIND_POSTS: ("poster_name", "author_name"),
}

# Generic activity-date columns first, then the per-kind columns of exports
DATE_FIELDS: Tuple[str, ...] = (
    "date",
    "timestamp",
    "created_at",
    "updated_at",
    "time",
    "posted_at",
    "checkin_time",
    "start_time",
)


# =============================================================================
# DATE PARSING
# =============================================================================

# Common date formats encountered in spreadsheet exports
DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",       # 2024-09-15 13:00:00
    "%Y-%m-%d %H:%M",          # 2024-09-15 13:00
    "%Y-%m-%d",                 # 2024-09-15
    "%Y/%m/%d",                 # 2024/09/15
    "%m/%d/%Y %I:%M %p",       # 09/15/2024 1:00 PM
    "%m/%d/%Y %H:%M:%S",       # 09/15/2024 13:00:00
    "%m/%d/%Y",                 # 09/15/2024
    "%b %d, %Y %I:%M%p",       # Sep 15, 2024 1:00PM
    "%b %d, %Y %I:%M %p",      # Sep 15, 2024 1:00 PM
    "%b %d, %Y",                # Sep 15, 2024
    "%B %d, %Y",                # September 15, 2024
    "%d-%b-%Y",                 # 15-Sep-2024
]


# =============================================================================
# INTEREST CATEGORIES
# =============================================================================

OTHER_CATEGORY = "Khác"

# (category label, keywords). Checked in order against group names.
INTEREST_CATEGORIES: List[Tuple[str, Tuple[str, ...]]] = [
    ("Thể thao", ("thể thao", "sport")),
    ("Du lịch", ("du lịch", "travel")),
    ("Công nghệ", ("công nghệ", "tech")),
    ("Giáo dục", ("giáo dục", "education")),
    ("Giải trí", ("giải trí", "entertainment")),
    ("Ẩm thực", ("ẩm thực", "food")),
    ("Thời trang", ("thời trang", "fashion")),
    ("Sức khỏe", ("sức khỏe", "health")),
    ("Kinh doanh", ("kinh doanh", "business")),
    ("Nghệ thuật", ("nghệ thuật", "art")),
]

TOP_INTERESTS_LIMIT = 5


# =============================================================================
# CONNECTION SCORING
# =============================================================================

FRIEND_CONNECTION_WEIGHT = 10
SHARED_GROUP_WEIGHT = 2

# Keys tried, in order, to identify a group row
GROUP_ID_FIELDS: Tuple[str, ...] = ("group_id", "id")


# =============================================================================
# PROCESSING & UPLOADS
# =============================================================================

# Rows (or pairs) processed between cooperative yields
DEFAULT_CHUNK_SIZE = 1000

MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB

ALLOWED_EXTENSIONS: Tuple[str, ...] = (".xlsx", ".xls", ".csv")

TOP_USERS_LIMIT = 5

DEFAULT_WORKSPACE_KEY = "default"


def bucket_for_kind(kind: str) -> Optional[str]:
    """Return the profile bucket name for a data kind, or None."""
    return BUCKET_FOR_KIND.get(kind)
