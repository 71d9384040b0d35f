import sys
import unittest
from pathlib import Path
from unittest import mock

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from netlocations.common.retry import RetryPolicy, check_connectivity, with_retry
from netlocations.core.errors import ConnectivityError, ProbeTimeoutError


class CheckConnectivityTests(unittest.TestCase):
    def test_unreachable_host_is_probed_exactly_retries_times(self) -> None:
        probe = mock.Mock(return_value=False)
        sleep = mock.Mock()

        reachable = check_connectivity("unreachable.invalid", timeout=1, retries=2, delay=0, probe=probe, sleep=sleep)

        self.assertFalse(reachable)
        self.assertEqual(2, probe.call_count)
        probe.assert_called_with("unreachable.invalid", 443, 1)
        sleep.assert_called_once_with(0)

    def test_stops_at_first_success(self) -> None:
        probe = mock.Mock(side_effect=[False, True, True])
        sleep = mock.Mock()

        self.assertTrue(check_connectivity("github.com", retries=3, delay=2, probe=probe, sleep=sleep))
        self.assertEqual(2, probe.call_count)
        sleep.assert_called_once_with(2)


class WithRetryTests(unittest.TestCase):
    def test_operation_runs_at_most_retries_times(self) -> None:
        operation = mock.Mock(side_effect=RuntimeError("remote refused"))
        sleep = mock.Mock()

        with self.assertRaises(ConnectivityError) as ctx:
            with_retry(operation, "Backup upload failed", retries=3, delay=0, connectivity=lambda: True, sleep=sleep)

        self.assertEqual(3, operation.call_count)
        self.assertEqual(3, ctx.exception.attempts)
        self.assertEqual("Backup upload failed after 3 attempts", ctx.exception.reason)
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertEqual(2, sleep.call_count)

    def test_returns_first_success(self) -> None:
        operation = mock.Mock(side_effect=[RuntimeError("flaky"), "done"])

        result = with_retry(operation, retries=3, delay=0, connectivity=lambda: True, sleep=mock.Mock())

        self.assertEqual("done", result)
        self.assertEqual(2, operation.call_count)

    def test_missing_connectivity_uses_attempts_without_running_operation(self) -> None:
        operation = mock.Mock(return_value="done")
        connectivity = mock.Mock(side_effect=[False, False, True])
        sleep = mock.Mock()

        result = with_retry(operation, retries=3, delay=5, connectivity=connectivity, sleep=sleep)

        self.assertEqual("done", result)
        operation.assert_called_once_with()
        self.assertEqual([mock.call(5), mock.call(5)], sleep.call_args_list)

    def test_never_online_fails_without_running_operation(self) -> None:
        operation = mock.Mock()

        with self.assertRaises(ConnectivityError) as ctx:
            with_retry(operation, retries=2, delay=0, connectivity=lambda: False, sleep=mock.Mock())

        operation.assert_not_called()
        self.assertIsNone(ctx.exception.__cause__)
        self.assertNotIsInstance(ctx.exception, ProbeTimeoutError)

    def test_final_timeout_surfaces_as_timeout(self) -> None:
        operation = mock.Mock(side_effect=TimeoutError("timed out"))

        with self.assertRaises(ProbeTimeoutError):
            with_retry(operation, retries=2, delay=0, connectivity=lambda: True, sleep=mock.Mock())


class RetryPolicyTests(unittest.TestCase):
    def test_run_uses_policy_values(self) -> None:
        policy = RetryPolicy(host="example.org", retries=2, delay=0, connectivity_retries=1)
        operation = mock.Mock(side_effect=RuntimeError("boom"))

        with mock.patch("netlocations.common.retry.tcp_check", return_value=True) as tcp_check:
            with mock.patch("netlocations.common.retry.time.sleep"):
                with self.assertRaises(ConnectivityError):
                    policy.run(operation, "Sync failed")

        self.assertEqual(2, operation.call_count)
        tcp_check.assert_called_with("example.org", 443, 5.0)


if __name__ == "__main__":
    unittest.main()
