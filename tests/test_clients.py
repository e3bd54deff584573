import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

import requests

from central_client import CentralClient
from errors import AuthRejected, BackendUnavailable
from local_client import LocalNodeClient, read_authtoken

NID = "abcdef0123456789"
MID = "aaaaaaaaaa"


def response(status=200, body=None):
    resp = Mock()
    resp.status_code = status
    resp.content = json.dumps(body).encode() if body is not None else b""
    resp.json.side_effect = lambda: json.loads(resp.content)
    return resp


def session_returning(*responses):
    session = requests.Session()
    session.request = Mock(side_effect=list(responses))
    return session


class LocalNodeClientTests(unittest.TestCase):
    def test_requests_carry_auth_header_and_timeout(self):
        session = session_returning(response(body=[]))
        client = LocalNodeClient("secret", session=session, timeout=1.5)

        client.list_networks()

        self.assertEqual(session.headers["X-ZT1-Auth"], "secret")
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("GET", "http://127.0.0.1:9993/network"))
        self.assertEqual(kwargs["timeout"], 1.5)

    def test_network_list_is_parsed(self):
        payload = [
            {
                "id": NID.upper(),
                "name": "lab",
                "status": "OK",
                "portDeviceName": "zt0",
                "assignedAddresses": ["10.1.1.5/24"],
            }
        ]
        client = LocalNodeClient("secret", session=session_returning(response(body=payload)))

        [network] = client.list_networks()

        self.assertEqual(network.network_id, NID)
        self.assertEqual(network.interface, "zt0")
        self.assertEqual(network.addresses, ("10.1.1.5/24",))

    def test_unjoined_network_is_none(self):
        client = LocalNodeClient("secret", session=session_returning(response(404)))

        self.assertIsNone(client.get_network(NID))

    def test_rejected_token_raises_auth_error(self):
        client = LocalNodeClient("wrong", session=session_returning(response(401)))

        with self.assertRaises(AuthRejected):
            client.list_networks()

    def test_timeout_is_backend_unavailable(self):
        session = requests.Session()
        session.request = Mock(side_effect=requests.exceptions.Timeout("slow"))
        client = LocalNodeClient("secret", session=session)

        with self.assertRaises(BackendUnavailable):
            client.list_networks()

    def test_server_error_is_backend_unavailable(self):
        client = LocalNodeClient("secret", session=session_returning(response(503)))

        with self.assertRaises(BackendUnavailable):
            client.join(NID)

    def test_missing_token_fails_without_request(self):
        session = session_returning()
        client = LocalNodeClient(None, session=session)

        with self.assertRaises(AuthRejected):
            client.list_networks()
        session.request.assert_not_called()


class CentralClientTests(unittest.TestCase):
    def test_members_are_parsed(self):
        payload = [
            {
                "nodeId": MID,
                "name": "printer",
                "lastOnline": 1700000000000,
                "config": {"authorized": True, "ipAssignments": ["10.1.1.9"]},
            }
        ]
        session = session_returning(response(body=payload))
        client = CentralClient("tok", session=session)

        [member] = client.list_members(NID)

        self.assertEqual(session.headers["Authorization"], "token tok")
        self.assertEqual(member.member_id, MID)
        self.assertTrue(member.authorized)
        self.assertEqual(member.addresses, ("10.1.1.9",))
        self.assertEqual(member.last_online_ms, 1700000000000)

    def test_set_authorized_posts_config_payload(self):
        session = session_returning(response(body={"nodeId": MID, "config": {"authorized": False}}))
        client = CentralClient("tok", session=session)

        member = client.set_authorized(NID, MID, False)

        args, kwargs = session.request.call_args
        self.assertEqual(args[0], "POST")
        self.assertTrue(args[1].endswith(f"/network/{NID}/member/{MID}"))
        self.assertEqual(kwargs["json"], {"config": {"authorized": False}})
        self.assertFalse(member.authorized)

    def test_rules_are_read_from_network_config(self):
        rules = [{"type": "ACTION_ACCEPT"}]
        client = CentralClient("tok", session=session_returning(response(body={"config": {"rules": rules}})))

        self.assertEqual(client.get_rules(NID), rules)

    def test_no_token_raises_auth_error(self):
        client = CentralClient(None, session=session_returning())

        with self.assertRaises(AuthRejected):
            client.list_members(NID)


class AuthtokenTests(unittest.TestCase):
    def test_missing_file_is_auth_error(self):
        with self.assertRaises(AuthRejected):
            read_authtoken(Path("/nonexistent/authtoken.secret"))

    def test_token_is_stripped(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "authtoken.secret"
            path.write_text("abc123\n", encoding="utf-8")

            self.assertEqual(read_authtoken(path), "abc123")


if __name__ == "__main__":
    unittest.main()
