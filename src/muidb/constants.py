"""
Constants and configuration values for MuiDB files.

Centralizes element names, namespaces and limits shared by the store,
the interchange adapters and the MCP server.
"""

# MuiDB document namespace
MUIDB_NAMESPACE = 'http://github.com/fmuecke/MuiDB'

# Marker for texts/comments that apply to every language
NEUTRAL_LANGUAGE = '*'

# Separator of the languages attribute
LANGUAGE_SEPARATOR = ';'

# Element and attribute names of the MuiDB document
ROOT_ELEMENT = 'muidb'
SETTINGS_ELEMENT = 'settings'
ITEMS_ELEMENT = 'items'
ITEM_ELEMENT = 'item'
TEXT_ELEMENT = 'text'
COMMENT_ELEMENT = 'comment'
TARGET_FILE_ELEMENT = 'target-file'

BASE_NAME_ATTRIBUTE = 'base-name'
LANGUAGES_ATTRIBUTE = 'languages'
CODE_NAMESPACE_ATTRIBUTE = 'code-namespace'
PROJECT_TITLE_ATTRIBUTE = 'project-title'
ID_ATTRIBUTE = 'id'
LANG_ATTRIBUTE = 'lang'
STATE_ATTRIBUTE = 'state'
DESIGNER_ATTRIBUTE = 'designer'

# Designer stub visibility of a target file ("internal" or "public")
DESIGNER_INTERNAL = 'internal'

# Serialized form of a newly created document
EMPTY_DOCUMENT = (
    f'<{ROOT_ELEMENT} xmlns="{MUIDB_NAMESPACE}">'
    f'<{SETTINGS_ELEMENT} {BASE_NAME_ATTRIBUTE}="" {LANGUAGES_ATTRIBUTE}=""/>'
    f'<{ITEMS_ELEMENT}/>'
    f'</{ROOT_ELEMENT}>'
)

# State assigned to strings imported from resource files
DEFAULT_IMPORT_STATE = 'new'

# File size limits
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB - localization files are typically much smaller

# XLIFF namespaces
XLIFF_NAMESPACES = {
    '1.2': 'urn:oasis:names:tc:xliff:document:1.2',
    '2.0': 'urn:oasis:names:tc:xliff:document:2.0',
}

# Trans-unit id that means "use the resname instead"
XLIFF_NO_ID = 'none'

# Allowed file extensions per format
MUIDB_EXTENSIONS = frozenset({'.xml', '.muidb'})
RESX_EXTENSIONS = frozenset({'.resx'})
XLIFF_EXTENSIONS = frozenset({'.xlf', '.xliff'})

FORMAT_EXTENSIONS = {
    'muidb': MUIDB_EXTENSIONS,
    'resx': RESX_EXTENSIONS,
    'xliff': XLIFF_EXTENSIONS,
}

# Cache configuration
CACHE_MAX_SIZE = 10  # Maximum number of cached stores

# Environment variables read by the server
ENV_SEARCH_DIRS = 'MUIDB_SEARCH_DIRS'
ENV_LOG_LEVEL = 'MUIDB_LOG_LEVEL'
ENV_LOG_FILE = 'MUIDB_LOG_FILE'
