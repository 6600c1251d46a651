"""Centralized constants for the WaniKani client.

All magic numbers and protocol names live here so every layer
imports from a single source of truth.
"""

# ---------- API ----------
URL_BASE = "https://api.wanikani.com/v2"
API_REVISION = "20170710"

# ---------- Headers ----------
REVISION_HEADER = "Wanikani-Revision"
AUTHORIZATION_HEADER = "Authorization"
ETAG_HEADER = "ETag"
LAST_MODIFIED_HEADER = "Last-Modified"
IF_NONE_MATCH_HEADER = "If-None-Match"
IF_MODIFIED_SINCE_HEADER = "If-Modified-Since"
RATE_LIMIT_LIMIT_HEADER = "RateLimit-Limit"
RATE_LIMIT_REMAINING_HEADER = "RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "RateLimit-Reset"

# ---------- Encoding ----------
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# ---------- HTTP ----------
REQUEST_TIMEOUT = 30.0
RATE_LIMIT_WINDOW = 60  # seconds, requests-per-minute throttle
RATE_LIMIT_RETRIES = 1

# ---------- Pagination ----------
PAGE_AFTER_PARAM = "page_after_id"
PAGE_BEFORE_PARAM = "page_before_id"

# ---------- Endpoints ----------
ASSIGNMENTS_PATH = "assignments"
LEVEL_PROGRESSIONS_PATH = "level_progressions"
RESETS_PATH = "resets"
REVIEWS_PATH = "reviews"
REVIEW_STATISTICS_PATH = "review_statistics"
SPACED_REPETITION_SYSTEMS_PATH = "spaced_repetition_systems"
STUDY_MATERIALS_PATH = "study_materials"
SUBJECTS_PATH = "subjects"
SUMMARY_PATH = "summary"
USER_PATH = "user"
VOICE_ACTORS_PATH = "voice_actors"

# ---------- SRS ----------
SECONDS_PER_HOUR = 3600
UNLOCKING_STAGE = 0
STARTING_STAGE = 1
