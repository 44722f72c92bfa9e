"""Field mapping tables from the Parse schema to the Firestore schema."""

from typing import Dict, List

from ..models.migration import EntityKind
from ..models.schema import EntityMapping, FieldMapping, TransformType

# Legacy userType codes
USER_TYPE_TO_ROLE = {
    "1": "admin",
    "2": "client",
    "3": "professional",
}
DEFAULT_ROLE = "client"

# Profile class owned by each userType; admins have none
PROFILE_KIND_BY_USER_TYPE = {
    "2": EntityKind.CLIENT_PROFILE,
    "3": EntityKind.PROFESSIONAL_PROFILE,
}


def _source_id() -> FieldMapping:
    return FieldMapping("objectId", "parseObjectId", required=True,
                        description="Parse objectId kept for reference")


def _audit_fields() -> List[FieldMapping]:
    return [
        FieldMapping("createdAt", "createdAt", TransformType.TIMESTAMP),
        FieldMapping("updatedAt", "updatedAt", TransformType.TIMESTAMP),
        FieldMapping(None, "migrationSource", TransformType.CONSTANT, {"value": "parse"}),
        FieldMapping(None, "migrationDate", TransformType.MIGRATION_TIME),
    ]


USER_MAPPING = EntityMapping(
    kind=EntityKind.USER,
    target_collection="users",
    description="Parse _User to users/{id}",
    field_mappings=[
        _source_id(),
        FieldMapping("username", "username"),
        FieldMapping("email", "email", required=True),
        FieldMapping("emailVerified", "emailVerified"),
        FieldMapping("userType", "userType"),
        FieldMapping(
            "userType", "role", TransformType.ENUM_MAP,
            {"mapping": USER_TYPE_TO_ROLE, "default": DEFAULT_ROLE},
        ),
        FieldMapping("roleNames", "roleNames"),
        FieldMapping("isBlocked", "isBlocked"),
        FieldMapping("clientPtr", "clientProfileId", TransformType.POINTER, {"attribute": "objectId"},
                     description="clientProfiles/{id} of a client user"),
        FieldMapping("professionalPtr", "professionalProfileId", TransformType.POINTER, {"attribute": "objectId"},
                     description="professionalProfiles/{id} of a professional user"),
        FieldMapping(
            "username", "displayName", TransformType.COALESCE,
            {"fallback_fields": ["email"], "strip_email_domain": True},
            default_value="Unknown User",
        ),
        FieldMapping(None, "isDeleted", TransformType.CONSTANT, {"value": False}),
        *_audit_fields(),
    ],
)

CLIENT_PROFILE_MAPPING = EntityMapping(
    kind=EntityKind.CLIENT_PROFILE,
    target_collection="clientProfiles",
    description="Parse Client to clientProfiles/{id}",
    field_mappings=[
        _source_id(),
        FieldMapping("firstName", "firstName"),
        FieldMapping("lastName", "lastName"),
        FieldMapping("dob", "dob", TransformType.TIMESTAMP),
        FieldMapping("gender", "gender"),
        FieldMapping("phoneNb", "phoneNb"),
        FieldMapping("emergencyContact", "emergencyContact"),
        FieldMapping("medicalHistory", "medicalHistory"),
        FieldMapping("preferences", "preferences"),
        *_audit_fields(),
    ],
)

PROFESSIONAL_PROFILE_MAPPING = EntityMapping(
    kind=EntityKind.PROFESSIONAL_PROFILE,
    target_collection="professionalProfiles",
    description="Parse Professional to professionalProfiles/{id}",
    field_mappings=[
        _source_id(),
        FieldMapping("firstName", "firstName"),
        FieldMapping("lastName", "lastName"),
        FieldMapping("businessName", "businessName"),
        FieldMapping("profType", "profType"),
        FieldMapping("dob", "dob", TransformType.TIMESTAMP),
        FieldMapping("gender", "gender"),
        FieldMapping("phoneNb", "phoneNb"),
        FieldMapping("meetType", "meetType"),
        FieldMapping("spokenLangArr", "spokenLangArr"),
        FieldMapping("expertisesIndArr", "expertisesIndArr"),
        FieldMapping("geoPt", "geoPt", TransformType.GEO_POINT),
        FieldMapping("addressObj", "addressObj"),
        FieldMapping("servicesOffered", "servicesOffered"),
        FieldMapping("certifications", "certifications"),
        FieldMapping("experience", "experience"),
        FieldMapping("isVerified", "isVerified"),
        FieldMapping("rating", "rating"),
        FieldMapping("reviewCount", "reviewCount"),
        *_audit_fields(),
    ],
)

APPOINTMENT_MAPPING = EntityMapping(
    kind=EntityKind.APPOINTMENT,
    target_collection="appointments",
    description="Parse Appointment to appointments/{id}",
    field_mappings=[
        _source_id(),
        FieldMapping("client", "client.uid", TransformType.POINTER, {"attribute": "objectId"}),
        FieldMapping("client", "client.email", TransformType.POINTER, {"attribute": "email"}),
        FieldMapping("professional", "professional.uid", TransformType.POINTER, {"attribute": "objectId"}),
        FieldMapping("professional", "professional.email", TransformType.POINTER, {"attribute": "email"}),
        FieldMapping("appointmentDate", "scheduling.dateTime", TransformType.TIMESTAMP, required=True),
        FieldMapping("duration", "scheduling.duration", default_value=60),
        FieldMapping("status", "scheduling.status", default_value="pending"),
        FieldMapping("appointmentType", "scheduling.type", default_value="consultation"),
        FieldMapping("notes", "scheduling.notes", default_value=""),
        FieldMapping("isCompleted", "session.completed", default_value=False),
        FieldMapping("sessionNotes", "session.sessionNotes", default_value=""),
        FieldMapping("outcomes", "session.outcomes", default_value=[]),
        *_audit_fields(),
    ],
)

DEFAULT_MAPPINGS: Dict[EntityKind, EntityMapping] = {
    EntityKind.USER: USER_MAPPING,
    EntityKind.CLIENT_PROFILE: CLIENT_PROFILE_MAPPING,
    EntityKind.PROFESSIONAL_PROFILE: PROFESSIONAL_PROFILE_MAPPING,
    EntityKind.APPOINTMENT: APPOINTMENT_MAPPING,
}
