"""Image source model and content trust helpers."""

from .errors import (
    AdditionalTagsError,
    ContentTrustError,
    NotaryConfigError,
    PayloadError,
    ResourceError,
    TagDecodeError,
)
from .notary import (
    NOTARY_CONFIG_FILE,
    NOTARY_DIR_NAME,
    MakeDir,
    NotaryConfigPlan,
    WriteFile,
    apply_plan,
    notary_host,
    plan_config_dir,
    prepare_config_dir,
)
from .types import (
    DEFAULT_FORMAT,
    DEFAULT_TAG,
    ContentTrust,
    Defaulted,
    GetParams,
    JsonNumber,
    MetadataField,
    PutParams,
    Source,
    Tag,
    Version,
    decode_tag,
    decode_tag_json,
    load_document,
)

__all__ = [
    "Source",
    "ContentTrust",
    "Tag",
    "JsonNumber",
    "Defaulted",
    "MetadataField",
    "Version",
    "GetParams",
    "PutParams",
    "DEFAULT_TAG",
    "DEFAULT_FORMAT",
    "decode_tag",
    "decode_tag_json",
    "load_document",
    "NOTARY_DIR_NAME",
    "NOTARY_CONFIG_FILE",
    "MakeDir",
    "WriteFile",
    "NotaryConfigPlan",
    "notary_host",
    "plan_config_dir",
    "apply_plan",
    "prepare_config_dir",
    "ResourceError",
    "PayloadError",
    "TagDecodeError",
    "ContentTrustError",
    "NotaryConfigError",
    "AdditionalTagsError",
]
