from .binfmt import WIDTHS, BinaryFormat, binary_chars, binary_format, binary_pattern, format_binary
from .dispatch import (
    MAX_ARITY,
    MIN_ARITY,
    DispatchFamily,
    DispatchResult,
    assert_call_sites,
    check_call_sites,
    with_defaults,
)
from .enums import (
    CanonicalList,
    EnumMember,
    EnumRecord,
    EnumTable,
    Name,
    NameTableEntry,
    build_enum_table,
    canonical_list,
    generate_enum,
    generate_members,
    generate_name_table,
    generate_records,
)
from .errors import ArityError, CallSiteError, DuplicateNameError, InvalidNameError, SpecError, WidthError

__version__ = "0.1.0"
