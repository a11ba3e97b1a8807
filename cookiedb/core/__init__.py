__version__ = "0.3.0"

from cookiedb.core.utils.core_utils import *
from cookiedb.core.base_cli import BaseCLI, KeyValuePairArgs
from cookiedb.core.cookiedb_binding import CookieDBBinding, CookieDBError, TransportError, ServerError, \
    CookieDBPathError, ResponseMode
from cookiedb.core.cookiedb_client import CookieDB
from cookiedb.core.typed import FieldKind, FieldType, SchemaError, Order, TableMeta, DatabaseMeta, UserCredential


def get_credential(url, credential_file=DEFAULT_CREDENTIAL_FILE):
    """
    This function is used to get the bearer token stored for a CookieDB server. Tokens are stored in the credential
    file keyed by server URL, e.g. `{"http://localhost:8777": {"bearer-token": "..."}}`, and can be saved there with
    `store_credential`.

    :param url: The server URL to retrieve the token for.
    :param credential_file: Optional path to non-default location of the credential file.
    :return: The bearer token string, or None if no token is stored for the server.
    """
    credentials = read_credential(credential_file or DEFAULT_CREDENTIAL_FILE, create_default=True)
    creds = credentials.get(normalize_url(url), credentials.get(url, dict()))
    return creds.get("bearer-token") or None
