from collections.abc import Mapping
from .cookiedb_binding import CookieDBBinding
from . import operations


class CookieDB (CookieDBBinding):
    """Client for a CookieDB server.

       Every method issues exactly one POST request and returns the
       decoded result. Failures reported by the server raise ServerError
       with the server's message; failures to reach the server or to
       understand its response raise TransportError.

       Example:

         db = CookieDB('http://localhost:8777', 'UKTZOvKweOG6tyKQl3q1SZlNx7AthowA')
         db.create_table('users', {'name': 'string', 'description': 'nullable string', 'age': 'number'})
         key = db.insert('users', {'name': 'cookie_fan', 'description': None, 'age': 20})
         db.get('users', key)
    """

    def __init__(self, url, token, session_config=None):
        """Create a CookieDB client.

           Arguments:
             url: base URL of the server, e.g. 'http://localhost:8777'
             token: bearer token of the tenant or user
             session_config: optional overrides of DEFAULT_SESSION_CONFIG
        """
        super(CookieDB, self).__init__(url, token, session_config)

    def _perform(self, operation):
        return operation.result(self.request(operation.path, json=operation.body, mode=operation.mode))

    # table operations

    def create_table(self, table, schema=None):
        """Create a table, optionally with a schema.

           :param table: name of the new table
           :param schema: mapping of field name to type descriptor (a string
             such as 'nullable string', a FieldType, or a nested mapping).
             Without a schema the table is schemaless.

           Example:

             db.create_table('users', {
                 'name': 'unique string',
                 'description': 'nullable string',
                 'age': 'number'
             })
        """
        return self._perform(operations.create_table(table, schema))

    def edit_table(self, table, name=None, schema=None, alias=None):
        """Rename a table and/or migrate its schema and documents in one server-side step.

           :param table: current name of the table
           :param name: new name of the table, if renaming
           :param schema: new schema, if migrating
           :param alias: mapping of new field name to a reference expression
             such as '$name' (or a nested alias), used to project existing
             documents onto the new schema
        """
        return self._perform(operations.edit_table(table, name, schema, alias))

    def drop_table(self, table):
        """Drop a table and every document in it. This cannot be undone."""
        return self._perform(operations.drop_table(table))

    def meta_table(self, table):
        """Return the TableMeta (schema and document count) of a table."""
        return self._perform(operations.meta_table(table))

    def meta(self):
        """Return the DatabaseMeta describing every table and the aggregate size."""
        return self._perform(operations.meta())

    # document operations

    def insert(self, table, document):
        """Insert one document, or a list of documents, into a table.

           :return: the key of the inserted document, or, for a list, the
             keys of the inserted documents in input order
        """
        if isinstance(document, Mapping):
            return self.insert_one(table, document)
        return self.insert_many(table, document)

    def insert_one(self, table, document):
        """Insert a single document and return its new key."""
        return self._perform(operations.insert_one(table, document))

    def insert_many(self, table, documents):
        """Insert several documents and return their keys in input order."""
        return self._perform(operations.insert_many(table, documents))

    def get(self, table, key, expand_keys=False):
        """Get a document by key.

           :param expand_keys: replace foreign key fields with the referenced
             documents, recursively
           :return: the document, including its 'key' field
        """
        return self._perform(operations.get(table, key, expand_keys))

    def update(self, table, key, document):
        """Merge the fields of document into the stored document; other fields are left untouched."""
        return self._perform(operations.update(table, key, document))

    def delete(self, table, key):
        """Delete a document by key. Deleting an absent key fails on the server."""
        return self._perform(operations.delete(table, key))

    def delete_by_query(self, table, where):
        """Delete every document matching the query expression and return their keys."""
        return self._perform(operations.delete_by_query(table, where))

    def select(self, table, where=None, max_results=None, order=None, expand_keys=False, alias=None):
        """Select documents from a table.

           :param where: boolean expression over '$field' references, e.g.
             'starts_with($name, "cookie")'; all documents when None
           :param max_results: maximum number of documents to return;
             unbounded when None or negative
           :param order: Order, field name, (field, descending) tuple or
             {'by': field, 'descending': bool} mapping
           :param expand_keys: resolve foreign keys recursively
           :param alias: projection of the returned documents
           :return: list of documents, each including its 'key' field.
             Without an order the result order is server-defined.

           Example:

             db.select('users', 'starts_with($name, "cookie")', max_results=5)
        """
        return self._perform(operations.select(table, where, max_results, order, expand_keys, alias))

    # user administration, requires an administrator token

    def create_user(self, username=None, token=None, admin=None):
        """Create a user; the server generates the username and/or token when omitted.

           :return: UserCredential with the resulting username and token
        """
        return self._perform(operations.create_user(username, token, admin))

    def delete_user(self, username):
        """Delete a user."""
        return self._perform(operations.delete_user(username))

    def regenerate_token(self, username):
        """Replace the token of a user, invalidating the previous one.

           :return: UserCredential carrying the new token
        """
        return self._perform(operations.regenerate_token(username))
