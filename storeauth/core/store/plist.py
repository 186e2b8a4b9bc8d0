"""Property-list parsing for account-service responses."""
import plistlib
from typing import Any, Dict
from xml.parsers.expat import ExpatError

from ..exceptions import TransportError


def parse_plist(text: str) -> Dict[str, Any]:
    """
    Parses an XML property-list document with a dictionary root.
    
    Raises:
        TransportError: If the text is not a dictionary plist
    """
    try:
        document = plistlib.loads(text.encode('utf-8'))
    except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise TransportError(f"Unparseable property list: {e}") from e
    
    if not isinstance(document, dict):
        raise TransportError("Property list root is not a dictionary")
    return document
