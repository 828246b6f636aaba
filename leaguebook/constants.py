"""Global constants for the leaguebook application."""

# Collection names
USERS_COLLECTION = "users"
USERS_PUBLIC_COLLECTION = "users_public"
HANDLES_COLLECTION = "handles"
GROUPS_COLLECTION = "groups"

# Group sub-collections
ROLES_COLLECTION = "roles"
MEMBERS_COLLECTION = "members"
INVITES_COLLECTION = "invites"
JOIN_REQUESTS_COLLECTION = "join_requests"
SHARE_PREFERENCES_COLLECTION = "share_preferences"
SHARED_PROFILES_ALL_COLLECTION = "shared_profiles_all"
SHARED_PROFILES_COLLECTION = "shared_profiles"

# Roles and permissions
FOUNDER_ROLE_ID = "OWNER"
DEFAULT_ROLE_ID = "member"
MEMBERS_MANAGE_PERMISSION = "members_manage"
PERMISSION_KEYS = (
    "invites_manage",
    "roles_manage",
    "members_manage",
    "members_sensitive_read",
    "schedules_read",
    "schedules_write",
    "vehicles_read",
    "vehicles_write",
    "maintenance_read",
    "maintenance_write",
)

# Invite / join request statuses
STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"

# Join codes (no 0/O, 1/I)
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 6
JOIN_CODE_MAX_ATTEMPTS = 10

# Handles
HANDLE_MIN_LENGTH = 3
HANDLE_MAX_LENGTH = 20
HANDLE_PATTERN = r"^[A-Za-z0-9._-]+$"

# Listing limits
MAX_JOINED_GROUPS = 200
MAX_INVITE_RESULTS = 200
MAX_JOIN_REQUESTS = 200
MAX_MEMBERSHIP_LOOKUP = 100

# Invites written by older clients carry the target e-mail under any of these.
INVITE_EMAIL_FIELDS = ("emailLower", "toEmailLower", "invitedEmailLower")

# Group logos
LOGO_PATH_TEMPLATE = "group_logos/{group_id}.jpg"
DEFAULT_LOGO_CONTENT_TYPE = "image/jpeg"
LOGO_MAX_BYTES = 2 * 1024 * 1024

# Fields that are always public, whatever the privacy map says.
ALWAYS_PUBLIC_FIELDS = frozenset(
    {
        "name",
        "surname",
        "handle",
        "photoUrl",
        "photoV",
        "coverUrl",
        "coverV",
        "thought",
    }
)

# Fields that default to private when the user has not set a policy.
SENSITIVE_FIELDS = frozenset(
    {
        # personal data
        "gender",
        "birthDate",
        "birthPlace",
        "taxCode",
        "citizenship",
        "maritalStatus",
        # contacts / residence
        "residenceStreet",
        "residencePostcode",
        "residenceCity",
        "residenceProvince",
        "residenceCountry",
        "domicileStreet",
        "domicilePostcode",
        "domicileCity",
        "domicileProvince",
        "domicileCountry",
        "personalEmail",
        "workEmail",
        "phone",
        "emergencyContactName",
        "emergencyContactPhone",
        # employment
        "hireDate",
        "contractType",
        "jobLevel",
        "jobTitle",
        "department",
        "workSchedule",
        "workLocation",
        "employmentStatus",
        "terminationDate",
        # documents and expiries
        "idDocumentType",
        "idDocumentExpiry",
        "drivingLicenceExpiry",
        "cqcExpiry",
        "driverCardExpiry",
        "iban",
        # residence permits
        "countryOfOrigin",
        "permitType",
        "permitNumber",
        "permitIssueDate",
        "permitExpiryDate",
        "permitIssuedBy",
        "permitReason",
        "renewalStatus",
        # pay
        "baseSalary",
        "supplement",
        "allowances",
        "benefits",
        "paymentType",
        "paymentFrequency",
        # safety and fitness for work
        "medicalCheckOutcome",
        "medicalCheckDate",
        "medicalCheckExpiry",
        "ppeAssigned",
        "mandatoryTraining",
        # HR notes
        "hrNotes",
        "disciplinaryNotes",
        "organisationalComments",
        # consents
        "privacyConsent",
        "consentDate",
        "noticeVersion",
        "photoConsent",
    }
)

# Field names from the first schema, mapped to their current spelling.
FIELD_ALIASES = {
    "nome": "name",
    "cognome": "surname",
    "nickname": "handle",
    "nicknameLower": "handleLower",
    "pensiero": "thought",
    "leagueIds": "groupIds",
    "activeLeagueId": "activeGroupId",
}

# Never copied into any projection.
INTERNAL_PROFILE_KEYS = frozenset(
    {
        "custom",
        "privacy",
        "sharePreferences",
        "fcmToken",
        "fcmTokens",
        "pushToken",
        "createdAt",
        "updatedAt",
    }
)

# Membership keys owned by the membership workflows, never by profile sync.
MEMBER_RESERVED_KEYS = frozenset(
    {"uid", "roleId", "joinCode", "createdAt", "updatedAt", "publicFieldKeys"}
)
