"""deployflow — Catálogo (core).

Componentes canônicos para documentos de deployment v1:
 - parsing (YAML/JSON)
 - validação estrutural e decodificação de expressões
 - carregamento de definições de módulo por arquivo (TemplateLoader)
"""

from .errors import (  # noqa: F401
    CatalogError,
    DocumentNotFoundError,
    DocumentParseError,
    DocumentValidationError,
    UnsupportedDocumentFormatError,
)
from .loader import (  # noqa: F401
    FileTemplateLoader,
    load_deployment,
    parse_deployment,
    read_document,
)
from .schema import (  # noqa: F401
    TemplateLoader,
    decode_expr,
    parse_definition,
    parse_outputs,
    parse_parameters,
)
