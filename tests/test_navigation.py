import curses
import unittest
from types import SimpleNamespace
from unittest.mock import Mock

from central_client import MemberSnapshot
from config_store import NETWORK_CONTEXT, CommandBinding
from display import draw_detail
from navigation import ActionKind, Navigator, ScreenKind
from view_model import ACTION_AUTHORIZE, ACTION_JOIN, ViewModel

IDS = ["abcdef0123456789", "0123456789abcdef", "1111111111111111"]
ENTER = ord("\n")
ESC = 27


def make_navigator(bindings=None):
    vm = ViewModel(IDS)
    vm.merge_member_snapshot(
        IDS[0],
        [
            MemberSnapshot("aaaaaaaaaa", "one", False, ()),
            MemberSnapshot("bbbbbbbbbb", "two", True, ()),
        ],
    )

    def lookup(context, key):
        return (bindings or {}).get((context, chr(key)))

    return vm, Navigator(vm, lookup)


class NavigatorTests(unittest.TestCase):
    def test_starts_on_main_list(self):
        _, nav = make_navigator()

        self.assertEqual(nav.screen.kind, ScreenKind.MAIN_LIST)
        self.assertEqual(nav.selected_network().network_id, IDS[0])

    def test_cursor_stays_within_list(self):
        _, nav = make_navigator()

        nav.handle_key(curses.KEY_UP)
        self.assertEqual(nav.main_cursor, 0)
        for _ in range(5):
            nav.handle_key(curses.KEY_DOWN)
        self.assertEqual(nav.main_cursor, 2)

    def test_enter_opens_members_and_escape_returns(self):
        _, nav = make_navigator()

        action = nav.handle_key(ENTER)
        self.assertEqual(action.kind, ActionKind.OPEN_MEMBERS)
        self.assertEqual(nav.screen.kind, ScreenKind.MEMBER_LIST)
        self.assertEqual(nav.screen.network_id, IDS[0])

        nav.handle_key(ESC)
        self.assertEqual(nav.screen.kind, ScreenKind.MAIN_LIST)

    def test_escape_from_detail_returns_to_main_list(self):
        _, nav = make_navigator()
        nav.handle_key(ENTER)
        nav.handle_key(ord("c"))
        self.assertEqual(nav.screen.kind, ScreenKind.JSON_DETAIL)

        nav.handle_key(ESC)

        self.assertEqual(nav.screen.kind, ScreenKind.MAIN_LIST)
        self.assertEqual(nav.selected_network().network_id, IDS[0])

    def test_action_keys_map_to_mutations(self):
        _, nav = make_navigator()
        nav.handle_key(curses.KEY_DOWN)

        join = nav.handle_key(ord("j"))
        forget = nav.handle_key(ord("d"))

        self.assertEqual((join.kind, join.mutation, join.network_id), (ActionKind.MUTATE, ACTION_JOIN, IDS[1]))
        self.assertEqual((forget.kind, forget.network_id), (ActionKind.FORGET, IDS[1]))
        self.assertEqual(nav.screen.kind, ScreenKind.MAIN_LIST)

    def test_member_actions_target_selected_member(self):
        _, nav = make_navigator()
        nav.handle_key(ENTER)
        nav.handle_key(curses.KEY_DOWN)

        action = nav.handle_key(ord("a"))

        self.assertEqual(action.kind, ActionKind.MUTATE)
        self.assertEqual(action.mutation, ACTION_AUTHORIZE)
        self.assertEqual(action.member_id, "bbbbbbbbbb")

    def test_bound_key_dispatches_command(self):
        binding = CommandBinding("1", "/bin/tcpdump -i %i", NETWORK_CONTEXT)
        _, nav = make_navigator({(NETWORK_CONTEXT, "1"): binding})

        action = nav.handle_key(ord("1"))

        self.assertEqual(action.kind, ActionKind.RUN_COMMAND)
        self.assertIs(action.binding, binding)
        self.assertEqual(action.network_id, IDS[0])

    def test_network_binding_is_inactive_on_member_screen(self):
        binding = CommandBinding("1", "echo", NETWORK_CONTEXT)
        _, nav = make_navigator({(NETWORK_CONTEXT, "1"): binding})
        nav.handle_key(ENTER)

        self.assertEqual(nav.handle_key(ord("1")).kind, ActionKind.NONE)

    def test_cursor_is_clamped_when_list_shrinks(self):
        vm, nav = make_navigator()
        nav.handle_key(curses.KEY_END)
        self.assertEqual(nav.main_cursor, 2)

        vm.forget(IDS[2])
        vm.forget(IDS[1])
        nav.clamp()

        self.assertEqual(nav.main_cursor, 0)
        self.assertEqual(nav.selected_network().network_id, IDS[0])

    def test_member_screen_closes_when_network_is_forgotten(self):
        vm, nav = make_navigator()
        nav.handle_key(ENTER)

        vm.forget(IDS[0])
        nav.clamp()

        self.assertEqual(nav.screen.kind, ScreenKind.MAIN_LIST)

    def test_rules_editor_returns_to_previous_screen(self):
        _, nav = make_navigator()
        nav.handle_key(ENTER)

        nav.enter_rules_editor(IDS[0])
        self.assertEqual(nav.screen.kind, ScreenKind.RULES_EDITOR)
        nav.leave_rules_editor()

        self.assertEqual(nav.screen.kind, ScreenKind.MEMBER_LIST)

    def test_detail_scroll_is_clamped_to_last_page(self):
        _, nav = make_navigator()
        nav.handle_key(ord("c"))
        nav.set_viewport(3)
        total = len(nav.detail_lines())

        nav.handle_key(curses.KEY_END)
        self.assertEqual(nav.detail_offset, total - 3)
        for _ in range(5):
            nav.handle_key(curses.KEY_DOWN)
        self.assertEqual(nav.detail_offset, total - 3)

        nav.handle_key(curses.KEY_HOME)
        self.assertEqual(nav.detail_offset, 0)

    def test_growing_viewport_pulls_detail_offset_back(self):
        _, nav = make_navigator()
        nav.handle_key(ord("c"))
        nav.set_viewport(2)
        nav.handle_key(curses.KEY_END)

        nav.set_viewport(100)

        self.assertEqual(nav.detail_offset, 0)

    def test_render_does_not_move_detail_offset(self):
        vm, nav = make_navigator()
        nav.handle_key(ord("c"))
        nav.detail_offset = 50
        dash = SimpleNamespace(view=vm, nav=nav)

        draw_detail(Mock(), dash, 2, 3, 80)

        self.assertEqual(nav.detail_offset, 50)

    def test_quit_from_any_screen(self):
        _, nav = make_navigator()
        nav.handle_key(ENTER)

        self.assertEqual(nav.handle_key(ord("q")).kind, ActionKind.QUIT)


if __name__ == "__main__":
    unittest.main()
