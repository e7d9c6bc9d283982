import errno
import unittest

from botocore.exceptions import ClientError, EndpointConnectionError

from mantablob.classify import ErrorClassifier
from mantablob.errors import (
    NotAuthorizedError,
    NotFoundError,
    TransportFailureError,
    UnsupportedOperationError,
)
from mantablob.gateway import GatewayError


def client_error(code: str, status: int, operation: str = "HeadObject") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class TestErrorClassifier(unittest.TestCase):
    def setUp(self) -> None:
        self.classifier = ErrorClassifier()

    def test_gateway_statuses(self) -> None:
        self.assertIsInstance(
            self.classifier.classify(GatewayError("nope", status=403)), NotAuthorizedError
        )
        self.assertIsInstance(
            self.classifier.classify(GatewayError("gone", status=404)), NotFoundError
        )
        self.assertIsInstance(
            self.classifier.classify(GatewayError("boom", status=500)), TransportFailureError
        )

    def test_client_errors(self) -> None:
        self.assertTrue(self.classifier.is_forbidden(client_error("AccessDenied", 403)))
        self.assertTrue(self.classifier.is_not_found(client_error("NoSuchKey", 404)))
        self.assertIsInstance(
            self.classifier.classify(client_error("InternalError", 500)),
            TransportFailureError,
        )

    def test_botocore_connection_error_is_transport_failure(self) -> None:
        exc = EndpointConnectionError(endpoint_url="https://example.invalid")
        classified = self.classifier.classify(exc)
        self.assertIsInstance(classified, TransportFailureError)
        self.assertIs(classified.__cause__, exc)

    def test_os_errors(self) -> None:
        self.assertIsInstance(
            self.classifier.classify(FileNotFoundError("missing")), NotFoundError
        )
        self.assertIsInstance(
            self.classifier.classify(PermissionError("denied")), NotAuthorizedError
        )
        self.assertIsInstance(
            self.classifier.classify(OSError(errno.EIO, "io")), TransportFailureError
        )

    def test_domain_errors_pass_through(self) -> None:
        error = UnsupportedOperationError("no")
        self.assertIs(self.classifier.classify(error), error)

    def test_unknown_errors_become_transport_failures(self) -> None:
        classified = self.classifier.classify(ValueError("odd"), "/acct/stor/x")
        self.assertIsInstance(classified, TransportFailureError)
        self.assertIn("/acct/stor/x", str(classified))

    def test_non_empty_directory_heuristic(self) -> None:
        self.assertTrue(
            self.classifier.indicates_non_empty_directory(
                OSError(errno.ENOTEMPTY, "Directory not empty")
            )
        )
        self.assertTrue(
            self.classifier.indicates_non_empty_directory(
                GatewayError("not empty", status=400, code="DirectoryNotEmpty")
            )
        )
        self.assertTrue(
            self.classifier.indicates_non_empty_directory(client_error("Conflict", 409))
        )

    def test_forbidden_and_missing_are_not_non_empty(self) -> None:
        for exc in [
            GatewayError("nope", status=403),
            GatewayError("gone", status=404),
            FileNotFoundError("missing"),
            PermissionError("denied"),
            client_error("AccessDenied", 403),
            ValueError("not an I/O failure"),
            NotFoundError("already classified"),
        ]:
            self.assertFalse(self.classifier.indicates_non_empty_directory(exc), exc)


if __name__ == "__main__":
    unittest.main()
