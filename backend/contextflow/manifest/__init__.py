from .schema import (
    ManifestValidationError,
    ServiceManifest,
    manifest_directory,
    manifest_from_dict,
    manifest_to_dict,
    parse_manifest,
    serialize_manifest,
    service_fields_from_manifest,
)

__all__ = [
    "ManifestValidationError",
    "ServiceManifest",
    "manifest_directory",
    "manifest_from_dict",
    "manifest_to_dict",
    "parse_manifest",
    "serialize_manifest",
    "service_fields_from_manifest",
]
