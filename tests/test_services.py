import unittest
from datetime import datetime, timezone

from botocore.exceptions import ClientError, EndpointConnectionError

from s3_table.services import FetchError, S3TableService, SignError, normalize_entry
from s3_table.settings import AppSettings

MODIFIED = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


def entry(key, size=1, last_modified=MODIFIED):
    return {"Key": key, "Size": size, "LastModified": last_modified}


class FakeS3Client:
    def __init__(self, object_responses=None, head_errors=None, presigned_errors=None):
        self.object_responses = {name: iter(responses) for name, responses in (object_responses or {}).items()}
        self.list_objects_kwargs = []
        self.head_object_calls = []
        self.head_errors = head_errors or {}
        self.presigned_url_calls = []
        self.presigned_errors = presigned_errors or {}

    def list_objects_v2(self, **kwargs):
        self.list_objects_kwargs.append(kwargs)
        response = next(self.object_responses[kwargs["Bucket"]])
        if isinstance(response, Exception):
            raise response
        return response

    def head_object(self, **kwargs):
        self.head_object_calls.append(kwargs)
        error = self.head_errors.get((kwargs["Bucket"], kwargs["Key"]))
        if error is not None:
            raise error
        return {"ContentLength": 1}

    def generate_presigned_url(self, client_method, Params=None, ExpiresIn=3600):
        params = Params or {}
        self.presigned_url_calls.append({"method": client_method, "params": params, "expires_in": ExpiresIn})
        error = self.presigned_errors.get((params.get("Bucket"), params.get("Key")))
        if error is not None:
            raise error
        return f"https://signed.example/{params['Bucket']}/{params['Key']}?expires={ExpiresIn}"


def make_service(fake_client, settings=None):
    factory_calls = []

    def factory(*args, **kwargs):
        factory_calls.append((args, kwargs))
        return fake_client

    return S3TableService(client_factory=factory, settings=settings), factory_calls


class NormalizeEntryTests(unittest.TestCase):
    def test_builds_object_meta(self):
        meta = normalize_entry("bkt", entry("a.txt", size=12))

        self.assertEqual("a.txt", meta.key)
        self.assertEqual(12, meta.size)
        self.assertEqual(MODIFIED, meta.last_modified)

    def test_naive_timestamps_are_treated_as_utc(self):
        meta = normalize_entry("bkt", entry("a.txt", last_modified=datetime(2024, 5, 1, 8, 30)))

        self.assertEqual(MODIFIED, meta.last_modified)

    def test_parses_iso_timestamp_strings(self):
        meta = normalize_entry("bkt", entry("a.txt", last_modified="2024-05-01T08:30:00Z"))

        self.assertEqual(MODIFIED, meta.last_modified)

    def test_rejects_missing_fields(self):
        for field in ("Key", "Size", "LastModified"):
            raw = entry("a.txt")
            del raw[field]
            with self.subTest(field=field):
                with self.assertRaises(FetchError) as ctx:
                    normalize_entry("bkt", raw)
                self.assertIn(field, str(ctx.exception))
                self.assertEqual("bkt", ctx.exception.bucket)

    def test_rejects_invalid_values(self):
        for raw in (entry(""), entry("a.txt", size=-1), entry("a.txt", size="12"), entry("a.txt", last_modified="soon")):
            with self.subTest(raw=raw):
                with self.assertRaises(FetchError):
                    normalize_entry("bkt", raw)


class FetchInventoryTests(unittest.TestCase):
    def test_returns_inventory_in_arrival_order(self):
        fake_client = FakeS3Client(
            {"bkt": [{"Contents": [entry("b.txt", 10), entry("a.txt", 5)], "IsTruncated": False}]}
        )
        service, _ = make_service(fake_client)

        inventory = service.fetch_inventory("bkt")

        self.assertEqual("bkt", inventory.bucket)
        self.assertEqual(["b.txt", "a.txt"], [obj.key for obj in inventory.objects])
        self.assertFalse(inventory.truncated)
        self.assertEqual([{"Bucket": "bkt"}], fake_client.list_objects_kwargs)

    def test_empty_bucket(self):
        fake_client = FakeS3Client({"bkt": [{"KeyCount": 0, "IsTruncated": False}]})
        service, _ = make_service(fake_client)

        inventory = service.fetch_inventory("bkt")

        self.assertEqual((), inventory.objects)

    def test_follows_continuation_tokens(self):
        fake_client = FakeS3Client(
            {
                "bkt": [
                    {"Contents": [entry("a.txt")], "IsTruncated": True, "NextContinuationToken": "token-1"},
                    {"Contents": [entry("b.txt")], "IsTruncated": True, "NextContinuationToken": "token-2"},
                    {"Contents": [entry("c.txt")], "IsTruncated": False},
                ]
            }
        )
        service, _ = make_service(fake_client)

        inventory = service.fetch_inventory("bkt")

        self.assertEqual(["a.txt", "b.txt", "c.txt"], [obj.key for obj in inventory.objects])
        self.assertFalse(inventory.truncated)
        self.assertEqual(
            [None, "token-1", "token-2"],
            [kwargs.get("ContinuationToken") for kwargs in fake_client.list_objects_kwargs],
        )

    def test_request_cap_marks_inventory_truncated(self):
        fake_client = FakeS3Client(
            {
                "bkt": [
                    {"Contents": [entry("a.txt")], "IsTruncated": True, "NextContinuationToken": "token-1"},
                    {"Contents": [entry("b.txt")], "IsTruncated": False},
                ]
            }
        )
        service, _ = make_service(fake_client, AppSettings(max_listing_pages=1))

        inventory = service.fetch_inventory("bkt")

        self.assertEqual(["a.txt"], [obj.key for obj in inventory.objects])
        self.assertTrue(inventory.truncated)
        self.assertEqual(1, len(fake_client.list_objects_kwargs))

    def test_truncated_response_without_token_stops(self):
        fake_client = FakeS3Client({"bkt": [{"Contents": [entry("a.txt")], "IsTruncated": True}]})
        service, _ = make_service(fake_client)

        inventory = service.fetch_inventory("bkt")

        self.assertTrue(inventory.truncated)

    def test_client_errors_become_fetch_errors(self):
        denied = ClientError({"Error": {"Code": "AccessDenied", "Message": "Denied"}}, "ListObjectsV2")
        fake_client = FakeS3Client({"bkt": [denied]})
        service, _ = make_service(fake_client)

        with self.assertRaises(FetchError) as ctx:
            service.fetch_inventory("bkt")

        self.assertEqual("bkt", ctx.exception.bucket)
        self.assertIs(denied, ctx.exception.__cause__)

    def test_connection_errors_become_fetch_errors(self):
        fake_client = FakeS3Client({"bkt": [EndpointConnectionError(endpoint_url="https://s3.example")]})
        service, _ = make_service(fake_client)

        with self.assertRaises(FetchError):
            service.fetch_inventory("bkt")

    def test_malformed_entry_fails_whole_fetch(self):
        fake_client = FakeS3Client(
            {
                "bkt": [
                    {"Contents": [entry("a.txt")], "IsTruncated": True, "NextContinuationToken": "token-1"},
                    {"Contents": [{"Key": "b.txt", "Size": 1}], "IsTruncated": False},
                ]
            }
        )
        service, _ = make_service(fake_client)

        with self.assertRaises(FetchError):
            service.fetch_inventory("bkt")

    def test_client_uses_configured_region_and_endpoint(self):
        fake_client = FakeS3Client({"bkt": [{"Contents": [], "IsTruncated": False}]})
        settings = AppSettings(region="eu-west-1", endpoint_url="https://minio.local")
        service, factory_calls = make_service(fake_client, settings)

        service.fetch_inventory("bkt")

        args, kwargs = factory_calls[0]
        self.assertEqual(("s3",), args)
        self.assertEqual("eu-west-1", kwargs["region_name"])
        self.assertEqual("https://minio.local", kwargs["endpoint_url"])

    def test_default_settings_omit_endpoint(self):
        fake_client = FakeS3Client({"bkt": [{"Contents": [], "IsTruncated": False}]})
        service, factory_calls = make_service(fake_client)

        service.fetch_inventory("bkt")

        _, kwargs = factory_calls[0]
        self.assertEqual("us-east-1", kwargs["region_name"])
        self.assertNotIn("endpoint_url", kwargs)


class GeneratePresignedUrlTests(unittest.TestCase):
    def test_signs_get_object_for_one_hour(self):
        fake_client = FakeS3Client()
        service, _ = make_service(fake_client)

        url = service.generate_presigned_url(bucket_name="bkt", key="a.txt")

        self.assertEqual("https://signed.example/bkt/a.txt?expires=3600", url)
        self.assertEqual(
            [{"method": "get_object", "params": {"Bucket": "bkt", "Key": "a.txt"}, "expires_in": 3600}],
            fake_client.presigned_url_calls,
        )
        self.assertEqual([{"Bucket": "bkt", "Key": "a.txt"}], fake_client.head_object_calls)

    def test_missing_object_raises_sign_error(self):
        missing = ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        fake_client = FakeS3Client(head_errors={("bkt", "missing-key"): missing})
        service, _ = make_service(fake_client)

        with self.assertRaises(SignError) as ctx:
            service.generate_presigned_url(bucket_name="bkt", key="missing-key")

        self.assertEqual("missing-key", ctx.exception.key)
        self.assertEqual("bkt", ctx.exception.bucket)
        self.assertIn("no longer exists", str(ctx.exception))
        self.assertEqual([], fake_client.presigned_url_calls)

    def test_denied_object_raises_sign_error(self):
        denied = ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadObject")
        fake_client = FakeS3Client(head_errors={("bkt", "secret.txt"): denied})
        service, _ = make_service(fake_client)

        with self.assertRaises(SignError) as ctx:
            service.generate_presigned_url(bucket_name="bkt", key="secret.txt")

        self.assertIs(denied, ctx.exception.__cause__)

    def test_signing_failure_raises_sign_error(self):
        fake_client = FakeS3Client(
            presigned_errors={("bkt", "a.txt"): EndpointConnectionError(endpoint_url="https://s3.example")}
        )
        service, _ = make_service(fake_client)

        with self.assertRaises(SignError):
            service.generate_presigned_url(bucket_name="bkt", key="a.txt")

    def test_validates_arguments(self):
        service, _ = make_service(FakeS3Client())

        with self.assertRaises(ValueError):
            service.generate_presigned_url(bucket_name="bkt", key="")
        with self.assertRaises(ValueError):
            service.generate_presigned_url(bucket_name="bkt", key="a.txt", expires_in=0)


if __name__ == "__main__":
    unittest.main()
