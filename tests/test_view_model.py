import random
import threading
import unittest

from central_client import MemberSnapshot
from constants import STATUS_DISCONNECTED, STATUS_OK
from local_client import NetworkSnapshot
from traffic import CounterSample
from tui_base import AppError, ErrorKind
from view_model import (
    ACTION_AUTHORIZE,
    ACTION_DELETE,
    ACTION_LEAVE,
    ACTION_RENAME,
    MutationResult,
    ViewModel,
)

NID = "abcdef0123456789"
OTHER = "0123456789abcdef"
THIRD = "1111111111111111"


def network(network_id, *, status=STATUS_OK, interface="zt0", addresses=("10.1.1.5",), name="lab"):
    return NetworkSnapshot(
        network_id=network_id,
        name=name,
        status=status,
        interface=interface,
        addresses=tuple(addresses),
        raw={"id": network_id, "status": status},
    )


def member(member_id, *, name="node", authorized=True, addresses=("10.1.1.9",)):
    return MemberSnapshot(member_id=member_id, name=name, authorized=authorized, addresses=tuple(addresses))


class MergeNetworkSnapshotTests(unittest.TestCase):
    def test_bookmark_is_listed_as_disconnected_before_first_poll(self):
        vm = ViewModel([NID])

        views = vm.visible_networks()

        self.assertEqual([v.network_id for v in views], [NID])
        self.assertEqual(views[0].display_status, STATUS_DISCONNECTED)
        self.assertTrue(views[0].stale)
        self.assertIsNone(views[0].interface)

    def test_poll_updates_live_fields_in_place(self):
        vm = ViewModel([NID, OTHER])
        before = vm.get(NID)

        vm.merge_network_snapshot([network(NID, interface="zt0", addresses=["10.1.1.5"])])

        after = vm.get(NID)
        self.assertIs(before, after)
        self.assertEqual(after.interface, "zt0")
        self.assertEqual(after.addresses, ("10.1.1.5",))
        self.assertEqual(after.display_status, STATUS_OK)
        self.assertFalse(after.stale)
        self.assertEqual(vm.bookmarks, [NID, OTHER])

    def test_disconnected_bookmark_keeps_row_and_last_known_values(self):
        vm = ViewModel([NID])
        vm.merge_network_snapshot([network(NID)])

        vm.merge_network_snapshot([])

        view = vm.get(NID)
        self.assertIn(NID, [v.network_id for v in vm.networks])
        self.assertEqual(view.display_status, STATUS_DISCONNECTED)
        self.assertTrue(view.stale)
        self.assertEqual(view.interface, "zt0")

    def test_unbookmarked_networks_are_not_added(self):
        vm = ViewModel([NID])

        vm.merge_network_snapshot([network(NID), network(OTHER)])

        self.assertEqual(vm.bookmarks, [NID])
        self.assertEqual(vm.unbookmarked, (OTHER,))

    def test_scoped_snapshot_only_touches_its_scope(self):
        vm = ViewModel([NID, OTHER])
        vm.merge_network_snapshot([network(NID), network(OTHER)])

        vm.merge_network_snapshot([], scope=[NID])

        self.assertEqual(vm.get(NID).display_status, STATUS_DISCONNECTED)
        self.assertEqual(vm.get(OTHER).display_status, STATUS_OK)
        self.assertEqual(vm.unbookmarked, ())

    def test_bookmarks_survive_any_sequence_of_merges(self):
        rng = random.Random(1234)
        ids = [NID, OTHER, THIRD]
        vm = ViewModel(ids)
        for _ in range(200):
            present = [nid for nid in ids + ["2222222222222222"] if rng.random() < 0.5]
            scope = None if rng.random() < 0.5 else rng.sample(ids, rng.randint(0, 3))
            vm.merge_network_snapshot([network(nid) for nid in present], scope=scope)
            self.assertEqual([v.network_id for v in vm.networks], ids)

    def test_network_id_cannot_change(self):
        vm = ViewModel([NID])

        with self.assertRaises(AttributeError):
            vm.get(NID).network_id = OTHER

    def test_connected_filter_hides_disconnected_rows_only_from_view(self):
        vm = ViewModel([NID, OTHER])
        vm.merge_network_snapshot([network(NID)])

        vm.toggle_filter()

        self.assertEqual([v.network_id for v in vm.visible_networks()], [NID])
        self.assertEqual(vm.bookmarks, [NID, OTHER])

    def test_counters_feed_traffic_history(self):
        vm = ViewModel([NID])
        vm.merge_network_snapshot([network(NID)], counters={"zt0": CounterSample(100, 50, 1.0)})
        vm.merge_network_snapshot([network(NID)], counters={"zt0": CounterSample(300, 150, 3.0)})

        self.assertEqual(vm.get(NID).traffic.rates(), (100.0, 50.0))

    def test_forget_removes_bookmark_and_members(self):
        vm = ViewModel([NID])
        vm.merge_member_snapshot(NID, [member("aaaaaaaaaa")])

        self.assertTrue(vm.forget(NID))

        self.assertEqual(vm.bookmarks, [])
        self.assertEqual(vm.members(NID), ())


class MergeMemberSnapshotTests(unittest.TestCase):
    def test_snapshot_replaces_member_set(self):
        vm = ViewModel([NID])
        vm.merge_member_snapshot(NID, [member("aaaaaaaaaa"), member("bbbbbbbbbb")])

        vm.merge_member_snapshot(NID, [member("cccccccccc")])

        self.assertEqual([m.member_id for m in vm.members(NID)], ["cccccccccc"])

    def test_members_of_unbookmarked_network_are_dropped(self):
        vm = ViewModel([NID])

        vm.merge_member_snapshot(OTHER, [member("aaaaaaaaaa")])

        self.assertFalse(vm.has_members(OTHER))

    def test_reader_never_sees_a_mixed_member_set(self):
        vm = ViewModel([NID])
        vm.merge_member_snapshot(NID, [member(f"{i:010x}", name="gen0") for i in range(50)])
        stop = threading.Event()

        def writer():
            generation = 1
            while not stop.is_set():
                vm.merge_member_snapshot(NID, [member(f"{i:010x}", name=f"gen{generation}") for i in range(50)])
                generation += 1

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(2000):
                names = {m.name for m in vm.members(NID)}
                self.assertEqual(len(names), 1)
        finally:
            stop.set()
            thread.join()


class ApplyMutationResultTests(unittest.TestCase):
    def setUp(self):
        self.vm = ViewModel([NID])
        self.vm.merge_network_snapshot([network(NID)])
        self.vm.merge_member_snapshot(NID, [member("aaaaaaaaaa", name="old", authorized=False)])

    def test_failure_leaves_state_unchanged_and_surfaces_error(self):
        error = AppError("rejected", kind=ErrorKind.AUTH_REJECTED)

        self.vm.apply_mutation_result(
            MutationResult(ACTION_RENAME, NID, ok=False, member_id="aaaaaaaaaa", value="new", error=error)
        )

        self.assertEqual(self.vm.members(NID)[0].name, "old")
        self.assertIs(self.vm.ui_state.notice, error)

    def test_authorize_updates_flag(self):
        self.vm.apply_mutation_result(MutationResult(ACTION_AUTHORIZE, NID, ok=True, member_id="aaaaaaaaaa"))

        self.assertTrue(self.vm.members(NID)[0].authorized)

    def test_rename_uses_returned_snapshot(self):
        returned = member("aaaaaaaaaa", name="renamed", authorized=False)

        self.vm.apply_mutation_result(
            MutationResult(ACTION_RENAME, NID, ok=True, member_id="aaaaaaaaaa", value=returned)
        )

        self.assertEqual(self.vm.members(NID)[0].name, "renamed")

    def test_delete_removes_member(self):
        self.vm.apply_mutation_result(MutationResult(ACTION_DELETE, NID, ok=True, member_id="aaaaaaaaaa"))

        self.assertEqual(self.vm.members(NID), ())

    def test_leave_marks_network_disconnected(self):
        self.vm.apply_mutation_result(MutationResult(ACTION_LEAVE, NID, ok=True))

        view = self.vm.get(NID)
        self.assertEqual(view.display_status, STATUS_DISCONNECTED)
        self.assertIn(NID, self.vm.bookmarks)


if __name__ == "__main__":
    unittest.main()
