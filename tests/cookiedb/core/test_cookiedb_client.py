# Tests for the cookiedb_client module.
#
# Unit tests mock the HTTP layer; integration tests require a running CookieDB server.
#
# Environment variables:
#  COOKIEDB_TEST_URL: url of the test server, e.g. http://localhost:8777
#  COOKIEDB_TEST_TOKEN: tenant token; an admin token enables the user administration tests
#  COOKIEDB_TEST_VERBOSE: set for verbose logging output to stdout (optional)

import logging
import os
import unittest
import uuid
from unittest.mock import MagicMock, patch

import requests

from cookiedb.core import CookieDB, CookieDBPathError, FieldKind, FieldType, Order, ServerError, TableMeta, \
    DatabaseMeta, TransportError, UserCredential

URL = "http://localhost:8777"
TOKEN = "UKTZOvKweOG6tyKQl3q1SZlNx7AthowA"

TEST_URL = os.getenv("COOKIEDB_TEST_URL")
TEST_TOKEN = os.getenv("COOKIEDB_TEST_TOKEN")

logger = logging.getLogger(__name__)
if os.getenv("COOKIEDB_TEST_VERBOSE"):
    logger.setLevel(logging.DEBUG)
    logger.addHandler(logging.StreamHandler())


def make_response(text, status_code=200):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    response.url = URL
    return response


class CookieDBRequestTests(unittest.TestCase):
    """Each operation sends one POST with the expected path and body."""

    def setUp(self):
        patcher = patch.object(requests.Session, "post")
        self.mock_post = patcher.start()
        self.addCleanup(patcher.stop)
        self.db = CookieDB(URL, TOKEN)
        self.addCleanup(self.db.close)

    def respond(self, text, status_code=200):
        self.mock_post.return_value = make_response(text, status_code)

    def assertRequest(self, path, body):
        self.mock_post.assert_called_once()
        self.assertEqual(self.mock_post.call_args.args[0], URL + path)
        self.assertEqual(self.mock_post.call_args.kwargs["json"], body)

    def test_create_table_with_schema(self):
        self.respond("success")
        result = self.db.create_table("users", {
            "name": "unique string",
            "description": FieldType(FieldKind.string, nullable=True),
            "address": {"city": "string", "zip": "nullable number"},
        })
        self.assertIsNone(result)
        self.assertRequest("/create/users", {
            "name": "unique string",
            "description": "nullable string",
            "address": {"city": "string", "zip": "nullable number"},
        })

    def test_create_table_schemaless(self):
        self.respond("success")
        self.db.create_table("logs")
        self.assertRequest("/create/logs", None)

    def test_create_table_conflict(self):
        self.respond('{"error": "table already exists"}', 400)
        with self.assertRaises(ServerError) as ctx:
            self.db.create_table("users")
        self.assertEqual(ctx.exception.message, "table already exists")

    def test_edit_table_sends_only_given_fields(self):
        self.respond("success")
        self.db.edit_table("users", name="people", alias={"full_name": "$name"})
        self.assertRequest("/edit/users", {"name": "people", "alias": {"full_name": "$name"}})

    def test_edit_table_schema(self):
        self.respond("{}")
        self.db.edit_table("users", schema={"name": "string", "age": "unique nullable number"})
        self.assertRequest("/edit/users", {"schema": {"name": "string", "age": "nullable unique number"}})

    def test_drop_table(self):
        self.respond("success")
        self.assertIsNone(self.db.drop_table("users"))
        self.assertRequest("/drop/users", None)

    def test_drop_missing_table(self):
        self.respond("table does not exist", 400)
        with self.assertRaises(ServerError):
            self.db.drop_table("missing")

    def test_meta_table(self):
        self.respond('{"schema": {"name": "string", "description": "nullable string"}, "size": 3}')
        meta = self.db.meta_table("users")
        self.assertRequest("/meta/users", None)
        self.assertIsInstance(meta, TableMeta)
        self.assertEqual(meta.size, 3)
        self.assertEqual(meta.schema["description"], FieldType(FieldKind.string, nullable=True))
        self.assertEqual(meta, TableMeta({"name": "string", "description": "nullable string"}, 3))

    def test_meta(self):
        self.respond('{"tables": {"users": {"schema": {"name": "string"}}, "logs": {"schema": null}}, "size": 4096}')
        meta = self.db.meta()
        self.assertRequest("/meta", None)
        self.assertIsInstance(meta, DatabaseMeta)
        self.assertEqual(meta.size, 4096)
        self.assertEqual(set(meta.tables), {"users", "logs"})
        self.assertEqual(meta.tables["users"].schema, {"name": "string"})
        self.assertIsNone(meta.tables["logs"].schema)

    def test_insert_single_document(self):
        self.respond('"b94a8779-f737-466b-ac40-4dfb130f0eee"')
        key = self.db.insert("users", {"name": "cookie_fan", "description": None, "age": 20})
        self.assertEqual(key, "b94a8779-f737-466b-ac40-4dfb130f0eee")
        self.assertRequest("/insert/users", {"name": "cookie_fan", "description": None, "age": 20})

    def test_insert_list_preserves_order(self):
        self.respond('["k1", "k2", "k3"]')
        documents = [{"name": "a"}, {"name": "b"}, {"name": "c"}]
        keys = self.db.insert("users", documents)
        self.assertEqual(keys, ["k1", "k2", "k3"])
        self.assertRequest("/insert/users", documents)

    def test_insert_many_rejects_wrong_key_count(self):
        self.respond('["k1"]')
        with self.assertRaises(TransportError):
            self.db.insert_many("users", [{"name": "a"}, {"name": "b"}])

    def test_insert_one_rejects_non_string_key(self):
        self.respond('["k1"]')
        with self.assertRaises(TransportError):
            self.db.insert_one("users", {"name": "a"})

    def test_insert_schema_mismatch(self):
        self.respond('{"error": "field \\"age\\" must be a number"}', 400)
        with self.assertRaises(ServerError) as ctx:
            self.db.insert("users", {"name": "a", "age": "old"})
        self.assertEqual(ctx.exception.message, 'field "age" must be a number')

    def test_get(self):
        self.respond('{"name": "cookie_fan", "description": null, "age": 20, "key": "k1"}')
        document = self.db.get("users", "k1")
        self.assertEqual(document, {"name": "cookie_fan", "description": None, "age": 20, "key": "k1"})
        self.assertRequest("/get/users/k1", {"expand_keys": False})

    def test_get_expand_keys(self):
        self.respond('{"owner": {"name": "cookie_fan", "key": "k1"}, "key": "k2"}')
        self.db.get("pets", "k2", expand_keys=True)
        self.assertRequest("/get/pets/k2", {"expand_keys": True})

    def test_get_missing_key(self):
        self.respond('{"error": "key does not exist"}', 404)
        with self.assertRaises(ServerError):
            self.db.get("users", "missing")

    def test_get_requires_key(self):
        with self.assertRaises(CookieDBPathError):
            self.db.get("users", "")
        self.mock_post.assert_not_called()

    def test_update(self):
        self.respond("success")
        self.assertIsNone(self.db.update("users", "k1", {"description": "a huge fan of cookies", "age": 21}))
        self.assertRequest("/update/users/k1", {"description": "a huge fan of cookies", "age": 21})

    def test_delete(self):
        self.respond("success")
        self.assertIsNone(self.db.delete("users", "k1"))
        self.assertRequest("/delete/users/k1", None)

    def test_delete_absent_key_is_not_success(self):
        self.respond('{"error": "key does not exist"}', 404)
        with self.assertRaises(ServerError) as ctx:
            self.db.delete("users", "k1")
        self.assertEqual(ctx.exception.message, "key does not exist")

    def test_delete_by_query(self):
        self.respond('["k1", "k2"]')
        keys = self.db.delete_by_query("users", "$age > 20")
        self.assertEqual(keys, ["k1", "k2"])
        self.assertRequest("/delete/users", {"where": "$age > 20"})

    def test_delete_by_query_nothing_matched(self):
        self.respond("[]")
        self.assertEqual(self.db.delete_by_query("users", "$age > 200"), [])

    def test_select_defaults(self):
        self.respond("[]")
        self.assertEqual(self.db.select("users"), [])
        self.assertRequest("/select/users", {"expand_keys": False})

    def test_select_with_options(self):
        self.respond('[{"name": "cookie_fan", "age": 21, "key": "k1"}]')
        result = self.db.select("users", 'starts_with($name, "cookie")', max_results=5,
                                order=Order("age", descending=True), expand_keys=True,
                                alias={"n": "$name"})
        self.assertEqual(result, [{"name": "cookie_fan", "age": 21, "key": "k1"}])
        self.assertRequest("/select/users", {
            "where": 'starts_with($name, "cookie")',
            "max_results": 5,
            "order": {"by": "age", "descending": True},
            "expand_keys": True,
            "alias": {"n": "$name"},
        })

    def test_select_order_forms(self):
        self.respond("[]")
        self.db.select("users", order=("age", False))
        self.assertEqual(self.mock_post.call_args.kwargs["json"]["order"], {"by": "age", "descending": False})
        self.mock_post.reset_mock()
        self.db.select("users", order="name")
        self.assertEqual(self.mock_post.call_args.kwargs["json"]["order"], {"by": "name", "descending": False})

    def test_select_negative_max_results_is_passed_through(self):
        self.respond("[]")
        self.db.select("users", max_results=-1)
        self.assertEqual(self.mock_post.call_args.kwargs["json"]["max_results"], -1)

    def test_select_malformed_response(self):
        self.respond("Internal Server Error", 500)
        with self.assertRaises(TransportError):
            self.db.select("users")

    def test_create_user(self):
        self.respond('{"username": "u", "token": "t"}')
        user = self.db.create_user(username="u", token="t")
        self.assertEqual(user, UserCredential("u", "t"))
        self.assertRequest("/create_user", {"username": "u", "token": "t"})

    def test_create_user_generated(self):
        self.respond('{"username": "generated", "token": "secret"}')
        user = self.db.create_user(admin=True)
        self.assertEqual(user.username, "generated")
        self.assertRequest("/create_user", {"admin": True})

    def test_create_user_unauthorized(self):
        self.respond('{"error": "insufficient permissions"}', 403)
        with self.assertRaises(ServerError):
            self.db.create_user()

    def test_create_user_missing_field(self):
        self.respond('{"username": "u"}')
        with self.assertRaises(TransportError):
            self.db.create_user(username="u")

    def test_delete_user(self):
        self.respond("success")
        self.assertIsNone(self.db.delete_user("u"))
        self.assertRequest("/delete_user/u", None)

    def test_regenerate_token(self):
        self.respond('{"username": "u", "token": "t2"}')
        user = self.db.regenerate_token("u")
        self.assertEqual(user.token, "t2")
        self.assertRequest("/regenerate_token/u", None)


@unittest.skipUnless(TEST_URL and TEST_TOKEN, "Test server not specified")
class CookieDBIntegrationTests(unittest.TestCase):
    """End-to-end tests against a running CookieDB server."""

    def setUp(self):
        self.db = CookieDB(TEST_URL, TEST_TOKEN)
        self.table = "users_%s" % uuid.uuid4().hex[:8]

    def tearDown(self):
        try:
            self.db.drop_table(self.table)
        except ServerError as e:
            logger.debug("Table %s not dropped: %s" % (self.table, e))
        self.db.close()

    def test_readme_demo(self):
        self.db.create_table(self.table, {
            "name": "string",
            "description": "nullable string",
            "age": "number"
        })
        self.assertEqual(self.db.meta_table(self.table).size, 0)

        key = self.db.insert(self.table, {"name": "cookie_fan", "description": None, "age": 20})
        self.assertEqual(self.db.get(self.table, key),
                         {"name": "cookie_fan", "description": None, "age": 20, "key": key})

        self.db.update(self.table, key, {"description": "a huge fan of cookies", "age": 21})
        result = self.db.select(self.table, 'starts_with($name, "cookie")', max_results=5)
        self.assertEqual(result, [
            {"name": "cookie_fan", "description": "a huge fan of cookies", "age": 21, "key": key}
        ])

        self.db.delete(self.table, key)
        with self.assertRaises(ServerError):
            self.db.get(self.table, key)

    def test_schema_round_trip(self):
        schema = {"name": "unique string", "age": "nullable number", "flags": {"admin": "boolean"}}
        self.db.create_table(self.table, schema)
        self.assertEqual(self.db.meta_table(self.table), TableMeta(schema, 0))

    def test_insert_many_order(self):
        self.db.create_table(self.table)
        documents = [{"n": i} for i in range(5)]
        keys = self.db.insert(self.table, documents)
        self.assertEqual(len(keys), len(documents))
        for key, document in zip(keys, documents):
            fetched = self.db.get(self.table, key)
            self.assertEqual(fetched["n"], document["n"])

    def test_update_leaves_other_fields(self):
        self.db.create_table(self.table)
        key = self.db.insert(self.table, {"a": 1, "b": 2})
        self.db.update(self.table, key, {"b": 3})
        self.assertEqual(self.db.get(self.table, key), {"a": 1, "b": 3, "key": key})

    def test_user_administration(self):
        username = "u_%s" % uuid.uuid4().hex[:8]
        try:
            user = self.db.create_user(username=username, token="t")
        except ServerError as e:
            self.skipTest("Test token lacks administrator privilege: %s" % e)
        self.assertEqual(user, UserCredential(username, "t"))
        regenerated = self.db.regenerate_token(username)
        self.assertNotEqual(regenerated.token, "t")
        self.db.delete_user(username)


if __name__ == "__main__":
    unittest.main()
