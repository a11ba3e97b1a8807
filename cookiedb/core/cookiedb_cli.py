import io
import json
import logging
import sys
import traceback
from collections.abc import Mapping
from cookiedb.core import __version__ as VERSION, BaseCLI, KeyValuePairArgs, CookieDB, CookieDBPathError, \
    ServerError, TransportError, TableMeta, DatabaseMeta, UserCredential, DEFAULT_URL, get_credential, \
    read_config, format_exception
from cookiedb.core.typed import SchemaError, schema_to_json, validate_schema
from cookiedb.core.utils import eprint


class CookieDBCLIException (Exception):
    """Base exception class for CookieDBCLI.
    """
    def __init__(self, message):
        """Initializes the exception.
        """
        super(CookieDBCLIException, self).__init__(message)


class UsageException (CookieDBCLIException):
    """Usage exception.
    """
    def __init__(self, message):
        """Initializes the exception.
        """
        super(UsageException, self).__init__(message)


def _schema_to_json(schema):
    if not isinstance(schema, Mapping):
        return schema
    try:
        return schema_to_json(schema)
    except SchemaError as e:
        # reported by the server in a form the typed model cannot express
        logging.debug("Printing schema as reported: %s" % e)
        return schema


def _to_json(result):
    if isinstance(result, TableMeta):
        return {"schema": _schema_to_json(result.schema), "size": result.size}
    if isinstance(result, DatabaseMeta):
        return {"tables": {name: {"schema": _schema_to_json(meta.schema)} for name, meta in result.tables.items()},
                "size": result.size}
    if isinstance(result, UserCredential):
        return result.to_dict()
    return result


class CookieDBCLI (BaseCLI):
    """CookieDB Command-line Interface.
    """
    def __init__(self, description, epilog):
        """Initializes the CLI.
        """
        super(CookieDBCLI, self).__init__(description, epilog, VERSION)

        # initialized after argument parsing
        self.args = None
        self.url = None
        self.db = None

        subparsers = self.parser.add_subparsers(title='sub-commands', dest='subcmd')

        # create-table parser
        create_parser = subparsers.add_parser('create-table', help="Create a table.")
        create_parser.add_argument("table", metavar="<table>", help="Table name")
        create_parser.add_argument("-s", "--schema-file", metavar="<schema file>",
                                   help="Path to a JSON file containing the table schema. "
                                        "The table is schemaless if omitted.")
        create_parser.set_defaults(func=self.create_table)

        # edit-table parser
        edit_parser = subparsers.add_parser('edit-table', help="Rename a table and/or migrate its schema.")
        edit_parser.add_argument("table", metavar="<table>", help="Table name")
        edit_parser.add_argument("-n", "--name", metavar="<name>", help="New table name")
        edit_parser.add_argument("-s", "--schema-file", metavar="<schema file>",
                                 help="Path to a JSON file containing the new table schema.")
        alias_group = edit_parser.add_mutually_exclusive_group()
        alias_group.add_argument("-a", "--alias-file", metavar="<alias file>",
                                 help="Path to a JSON file containing the field alias mapping.")
        alias_group.add_argument("--alias", metavar="[field=expression field=expression ...]",
                                 nargs='+', action=KeyValuePairArgs,
                                 help="Variable length of whitespace-delimited field=expression pairs used to "
                                      "project existing documents onto the new schema. "
                                      "For example: --alias full_name=$name years=$age")
        edit_parser.set_defaults(func=self.edit_table)

        # drop-table parser
        drop_parser = subparsers.add_parser('drop-table', help="Drop a table and all of its documents.")
        drop_parser.add_argument("table", metavar="<table>", help="Table name")
        drop_parser.set_defaults(func=self.drop_table)

        # meta parser
        meta_parser = subparsers.add_parser('meta', help="Show the schema and size of one or all tables.")
        meta_parser.add_argument("table", metavar="<table>", nargs="?", help="Table name")
        meta_parser.set_defaults(func=self.meta)

        # insert parser
        insert_parser = subparsers.add_parser('insert', help="Insert a document or a list of documents.")
        insert_parser.add_argument("table", metavar="<table>", help="Table name")
        insert_parser.add_argument("input_file", metavar="<input file path>",
                                   help="Path to a JSON file containing a document or a list of documents.")
        insert_parser.set_defaults(func=self.insert)

        # get parser
        get_parser = subparsers.add_parser('get', help="Get a document by key.")
        get_parser.add_argument("table", metavar="<table>", help="Table name")
        get_parser.add_argument("key", metavar="<key>", help="Document key")
        get_parser.add_argument("-x", "--expand-keys", action="store_true",
                                help="Resolve foreign keys into the referenced documents.")
        get_parser.set_defaults(func=self.get)

        # update parser
        update_parser = subparsers.add_parser('update', help="Merge fields into an existing document.")
        update_parser.add_argument("table", metavar="<table>", help="Table name")
        update_parser.add_argument("key", metavar="<key>", help="Document key")
        update_parser.add_argument("input_file", metavar="<input file path>",
                                   help="Path to a JSON file containing the fields to update.")
        update_parser.set_defaults(func=self.update)

        # delete parser
        del_parser = subparsers.add_parser('delete', help="Delete a document by key.")
        del_parser.add_argument("table", metavar="<table>", help="Table name")
        del_parser.add_argument("key", metavar="<key>", help="Document key")
        del_parser.set_defaults(func=self.delete)

        # delete-by-query parser
        del_query_parser = subparsers.add_parser('delete-by-query', help="Delete every document matching a query.")
        del_query_parser.add_argument("table", metavar="<table>", help="Table name")
        del_query_parser.add_argument("where", metavar="<where>", help="Query expression, e.g. '$age > 20'")
        del_query_parser.set_defaults(func=self.delete_by_query)

        # select parser
        select_parser = subparsers.add_parser('select', help="Select documents from a table.")
        select_parser.add_argument("table", metavar="<table>", help="Table name")
        select_parser.add_argument("where", metavar="<where>", nargs="?",
                                   help="Query expression, e.g. 'starts_with($name, \"cookie\")'")
        select_parser.add_argument("-m", "--max-results", metavar="<count>", type=int,
                                   help="Maximum number of documents to return.")
        select_parser.add_argument("-o", "--order-by", metavar="<field>", help="Field to sort the results on.")
        select_parser.add_argument("-d", "--descending", action="store_true",
                                   help="Sort in descending order. Requires --order-by.")
        select_parser.add_argument("-x", "--expand-keys", action="store_true",
                                   help="Resolve foreign keys into the referenced documents.")
        select_parser.set_defaults(func=self.select)

        # create-user parser
        create_user_parser = subparsers.add_parser('create-user', help="Create a user. Requires an admin token.")
        create_user_parser.add_argument("-u", "--username", metavar="<username>",
                                        help="Username. Generated by the server if omitted.")
        create_user_parser.add_argument("-t", "--user-token", metavar="<token>",
                                        help="Token of the new user. Generated by the server if omitted.")
        create_user_parser.add_argument("--admin", action="store_true", default=None,
                                        help="Grant administrator privilege to the new user.")
        create_user_parser.set_defaults(func=self.create_user)

        # delete-user parser
        del_user_parser = subparsers.add_parser('delete-user', help="Delete a user. Requires an admin token.")
        del_user_parser.add_argument("username", metavar="<username>", help="Username")
        del_user_parser.set_defaults(func=self.delete_user)

        # regenerate-token parser
        regen_parser = subparsers.add_parser('regenerate-token',
                                             help="Replace the token of a user. Requires an admin token.")
        regen_parser.add_argument("username", metavar="<username>", help="Username")
        regen_parser.set_defaults(func=self.regenerate_token)

    @staticmethod
    def _read_json(file_path):
        try:
            with io.open(file_path, encoding='utf-8') as input_file:
                return json.load(input_file)
        except (OSError, ValueError) as e:
            raise UsageException("Unable to read JSON from %s: %s" % (file_path, format_exception(e)))

    def _read_schema(self, file_path):
        schema = self._read_json(file_path)
        errors = validate_schema(schema)
        if errors:
            raise UsageException("Invalid schema in %s: %s" % (file_path, errors[0].message))
        return schema

    @staticmethod
    def _print(result):
        if result is not None:
            print(json.dumps(_to_json(result), indent=2))

    def _post_parser_init(self, args):
        """Shared initialization for all sub-commands.
        """
        url = args.url
        if not url:
            config = read_config(args.config_file, create_default=True)
            url = config.get("server", {}).get("url") or DEFAULT_URL
        token = args.token or get_credential(url, args.credential_file)
        if not token:
            raise UsageException("No token given and none stored for %s" % url)
        self.url = url
        session_config = None
        if args.config_file:
            session_config = read_config(args.config_file).get("session")
        self.db = CookieDB(url, token, session_config=session_config)

    def create_table(self, args):
        """Implements the create-table sub-command.
        """
        schema = self._read_schema(args.schema_file) if args.schema_file else None
        self.db.create_table(args.table, schema)

    def edit_table(self, args):
        """Implements the edit-table sub-command.
        """
        schema = self._read_schema(args.schema_file) if args.schema_file else None
        alias = self._read_json(args.alias_file) if args.alias_file else args.alias
        if args.name is None and schema is None and alias is None:
            raise UsageException("Nothing to edit: give at least one of --name, --schema-file or an alias")
        self.db.edit_table(args.table, name=args.name, schema=schema, alias=alias)

    def drop_table(self, args):
        """Implements the drop-table sub-command.
        """
        self.db.drop_table(args.table)

    def meta(self, args):
        """Implements the meta sub-command.
        """
        self._print(self.db.meta_table(args.table) if args.table else self.db.meta())

    def insert(self, args):
        """Implements the insert sub-command.
        """
        documents = self._read_json(args.input_file)
        if not isinstance(documents, (dict, list)):
            raise UsageException("Input must be a JSON object or a list of JSON objects")
        self._print(self.db.insert(args.table, documents))

    def get(self, args):
        """Implements the get sub-command.
        """
        self._print(self.db.get(args.table, args.key, expand_keys=args.expand_keys))

    def update(self, args):
        """Implements the update sub-command.
        """
        document = self._read_json(args.input_file)
        if not isinstance(document, dict):
            raise UsageException("Input must be a JSON object")
        self.db.update(args.table, args.key, document)

    def delete(self, args):
        """Implements the delete sub-command.
        """
        self.db.delete(args.table, args.key)

    def delete_by_query(self, args):
        """Implements the delete-by-query sub-command.
        """
        self._print(self.db.delete_by_query(args.table, args.where))

    def select(self, args):
        """Implements the select sub-command.
        """
        if args.descending and not args.order_by:
            raise UsageException("--descending requires --order-by")
        order = (args.order_by, args.descending) if args.order_by else None
        self._print(self.db.select(args.table,
                                   args.where,
                                   max_results=args.max_results,
                                   order=order,
                                   expand_keys=args.expand_keys))

    def create_user(self, args):
        """Implements the create-user sub-command.
        """
        self._print(self.db.create_user(username=args.username, token=args.user_token, admin=args.admin))

    def delete_user(self, args):
        """Implements the delete-user sub-command.
        """
        self.db.delete_user(args.username)

    def regenerate_token(self, args):
        """Implements the regenerate-token sub-command.
        """
        self._print(self.db.regenerate_token(args.username))

    def main(self, argv=None):
        """Main routine of the CLI.
        """
        args = self.parse_cli(argv)
        self.args = args

        try:
            if not hasattr(args, 'func'):
                self.parser.print_usage()
                return 1

            self._post_parser_init(args)
            args.func(args)
            return 0
        except UsageException as e:
            eprint("{prog} {subcmd}: {msg}".format(prog=self.parser.prog, subcmd=args.subcmd, msg=e))
        except CookieDBPathError as e:
            eprint(e)
        except ServerError as e:
            logging.debug(format_exception(e))
            eprint("{prog} {subcmd}: {msg}".format(prog=self.parser.prog, subcmd=args.subcmd, msg=e.message))
        except TransportError as e:
            logging.debug(format_exception(e.cause) if e.cause else format_exception(e))
            eprint("{prog}: Connection error occurred: {msg}".format(prog=self.parser.prog, msg=e))
        except RuntimeError as e:
            logging.warning(format_exception(e))
            eprint('Unexpected runtime error occurred')
        except Exception:
            eprint('Unexpected error occurred')
            traceback.print_exc()
        finally:
            if self.db is not None:
                self.db.close()
        return 1


def main(argv=None):
    DESC = "CookieDB Command-Line Interface"
    INFO = "For more information see: https://github.com/cookiedb/cookiedb-py"
    return CookieDBCLI(DESC, INFO).main(argv)


if __name__ == '__main__':
    sys.exit(main())
