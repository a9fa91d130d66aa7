"""
COPY option vocabulary for the Redshift load command.

Every supported option knows how to render itself into a command fragment.
Options come in three render shapes: NONE (keyword only, e.g. GZIP),
QUOTED (keyword followed by a single-quoted argument, e.g. DELIMITER '|')
and RAW (keyword followed by a bare number or identifier, e.g. MAXERROR 10).
"""

import re
from enum import Enum
from typing import Any, Dict, Mapping, Optional

COPY_OPTIONS_PREFIX = 'copyoptions.'

# Raw arguments are substituted unquoted, so only plain numbers/identifiers pass
_RAW_ARGUMENT = re.compile(r'^[A-Za-z0-9_.+-]+$')


class RenderShape(Enum):
    NONE = 'none'
    QUOTED = 'quoted'
    RAW = 'raw'


class CopyOption(Enum):
    """
    COPY options supported by the load command.

    Declaration order is the canonical render order: an option set always
    renders in this order regardless of how it was built.
    """
    FIXEDWIDTH = 'FIXEDWIDTH'
    DELIMITER = 'DELIMITER'
    CSV = 'CSV'
    ENCRYPTED = 'ENCRYPTED'
    GZIP = 'GZIP'
    LZOP = 'LZOP'
    REMOVEQUOTES = 'REMOVEQUOTES'
    EXPLICIT_IDS = 'EXPLICIT_IDS'
    ACCEPTINVCHARS = 'ACCEPTINVCHARS'
    MAXERROR = 'MAXERROR'
    DATEFORMAT = 'DATEFORMAT'
    TIMEFORMAT = 'TIMEFORMAT'
    IGNOREHEADER = 'IGNOREHEADER'
    ACCEPTANYDATE = 'ACCEPTANYDATE'
    IGNOREBLANKLINES = 'IGNOREBLANKLINES'
    TRUNCATECOLUMNS = 'TRUNCATECOLUMNS'
    FILLRECORD = 'FILLRECORD'
    TRIMBLANKS = 'TRIMBLANKS'
    NOLOAD = 'NOLOAD'
    NULL = 'NULL'
    EMPTYASNULL = 'EMPTYASNULL'
    BLANKSASNULL = 'BLANKSASNULL'
    COMPROWS = 'COMPROWS'
    COMPUPDATE = 'COMPUPDATE'
    STATUPDATE = 'STATUPDATE'
    ESCAPE = 'ESCAPE'
    ROUNDEC = 'ROUNDEC'

    @property
    def shape(self) -> RenderShape:
        return _RENDER_SHAPES.get(self, RenderShape.NONE)

    @property
    def argument_keyword(self) -> Optional[str]:
        return _ARGUMENT_KEYWORDS.get(self)

    def get_arguments(self, argument: Optional[str] = None) -> str:
        """
        Render this option into a COPY command fragment.

        Never fails: a missing, empty or unusable argument degrades to the
        bare keyword, which the command syntax accepts with the surrounding
        whitespace. Quoted arguments are taken verbatim, so a tab or space
        delimiter survives.

        Args:
            argument: Option argument, None for flag-style use

        Returns:
            Fragment such as " GZIP ", "DELIMITER '|' " or "MAXERROR 10 "
        """
        bare = f" {self.value} "

        if self.shape is RenderShape.NONE or argument is None:
            return bare

        argument = str(argument)
        if argument == '':
            return bare

        if self.shape is RenderShape.QUOTED:
            rendered = "'%s'" % argument.replace("'", "''")
        else:
            if not _RAW_ARGUMENT.match(argument.strip()):
                return bare
            rendered = argument.strip()

        parts = [self.value]
        if self.argument_keyword:
            parts.append(self.argument_keyword)
        parts.append(rendered)
        return " ".join(parts) + " "


# Options absent from this table render as NONE (flag only)
_RENDER_SHAPES = {
    CopyOption.FIXEDWIDTH: RenderShape.QUOTED,
    CopyOption.DELIMITER: RenderShape.QUOTED,
    CopyOption.CSV: RenderShape.QUOTED,
    CopyOption.ACCEPTINVCHARS: RenderShape.QUOTED,
    CopyOption.MAXERROR: RenderShape.RAW,
    CopyOption.DATEFORMAT: RenderShape.QUOTED,
    CopyOption.TIMEFORMAT: RenderShape.QUOTED,
    CopyOption.IGNOREHEADER: RenderShape.RAW,
    CopyOption.NULL: RenderShape.QUOTED,
    CopyOption.COMPROWS: RenderShape.RAW,
    CopyOption.COMPUPDATE: RenderShape.RAW,
    CopyOption.STATUPDATE: RenderShape.RAW,
}

# CSV takes its argument as "CSV QUOTE 'x'"
_ARGUMENT_KEYWORDS = {
    CopyOption.CSV: 'QUOTE',
}


def extract_copy_options(properties: Mapping[str, Any],
                         copy_options_prefix: str = COPY_OPTIONS_PREFIX) -> Dict[CopyOption, Optional[str]]:
    """
    Collect the COPY options present in a property map.

    Every option of the vocabulary is looked up under prefix + NAME; keys
    that match no option are ignored.

    Args:
        properties: String-keyed configuration
        copy_options_prefix: Prefix in front of option names

    Returns:
        Mapping of present options to their argument (None for flags)
    """
    copy_options = {}
    for option in CopyOption:
        prop_name = copy_options_prefix + option.value
        if prop_name in properties:
            value = properties[prop_name]
            copy_options[option] = str(value) if value is not None else None
    return copy_options


def render_copy_options(copy_options: Mapping[CopyOption, Optional[str]]) -> str:
    """Concatenate option fragments in canonical order"""
    return "".join(
        option.get_arguments(copy_options[option])
        for option in CopyOption
        if option in copy_options
    )
