"""Names of the events the platform emits, grouped by funnel stage."""


class Events:
    # Acquisition
    LANDING_VIEW = "landing_view"
    CTA_CLICK = "cta_click"
    PRICING_VIEW = "pricing_view"
    COURSE_PREVIEW = "course_preview"

    # Activation
    SIGNUP_START = "signup_start"
    LOGIN_SUCCESS = "login_success"
    ACTIVATION_COMPLETE = "activation_complete"
    FIRST_COURSE_CREATED = "first_course_created"

    # Core value
    COURSE_CREATED = "course_created"
    LESSON_ADDED = "lesson_added"
    COURSE_PUBLISHED = "course_published"
    ENROLLMENT_COMPLETED = "enrollment_completed"
    LESSON_COMPLETED = "lesson_completed"
    CERTIFICATE_ISSUED = "certificate_issued"

    # Monetization
    CHECKOUT_STARTED = "checkout_started"
    PURCHASE_COMPLETED = "purchase_completed"
    SUBSCRIPTION_STARTED = "subscription_started"
    COURSE_SOLD = "course_sold"

    # Retention
    RETURN_SESSION = "return_session"
    LESSON_STREAK = "lesson_streak"

    # Reliability
    ERROR_SHOWN = "error_shown"
    API_ERROR = "api_error"

    # Internal
    IDENTIFY = "_identify"
    PAGE_VIEW = "page_view"
