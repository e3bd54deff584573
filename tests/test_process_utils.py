import json
import unittest
from unittest.mock import patch

from errors import CommandSpawnFailed, InvalidRulesEdit
from process_utils import edit_json_in_editor, editor_command, managed_process


def launcher_writing(text, exit_code=0):
    seen = []

    def launch(path):
        seen.append(path)
        path.write_text(text, encoding="utf-8")
        return exit_code

    return launch, seen


class EditJsonTests(unittest.TestCase):
    def test_returns_edited_list_and_removes_temp_file(self):
        launch, seen = launcher_writing(json.dumps([{"type": "ACTION_DROP"}]))

        edited = edit_json_in_editor([{"type": "ACTION_ACCEPT"}], launcher=launch)

        self.assertEqual(edited, [{"type": "ACTION_DROP"}])
        self.assertFalse(seen[0].exists())

    def test_editor_sees_current_rules(self):
        contents = []

        def launch(path):
            contents.append(json.loads(path.read_text(encoding="utf-8")))
            return 0

        edit_json_in_editor([{"type": "ACTION_ACCEPT"}], launcher=launch)

        self.assertEqual(contents, [[{"type": "ACTION_ACCEPT"}]])

    def test_invalid_json_is_rejected(self):
        launch, seen = launcher_writing("[{broken")

        with self.assertRaises(InvalidRulesEdit):
            edit_json_in_editor([], launcher=launch)
        self.assertFalse(seen[0].exists())

    def test_non_list_is_rejected(self):
        launch, _ = launcher_writing('{"rules": []}')

        with self.assertRaises(InvalidRulesEdit):
            edit_json_in_editor([], launcher=launch)

    def test_non_zero_editor_exit_discards_edit(self):
        launch, _ = launcher_writing("[]", exit_code=1)

        with self.assertRaises(InvalidRulesEdit):
            edit_json_in_editor([], launcher=launch)


class ProcessTests(unittest.TestCase):
    def test_editor_falls_back_to_vi(self):
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(editor_command(), ["vi"])

    def test_visual_wins_over_editor(self):
        with patch.dict("os.environ", {"VISUAL": "code --wait", "EDITOR": "nano"}, clear=True):
            self.assertEqual(editor_command(), ["code", "--wait"])

    def test_unparsable_editor_variable_is_spawn_failure(self):
        with patch.dict("os.environ", {"EDITOR": "vim 'unbalanced"}, clear=True):
            with self.assertRaises(CommandSpawnFailed):
                editor_command()

    def test_temp_file_failure_is_spawn_failure(self):
        with patch("process_utils.tempfile.mkstemp", side_effect=OSError("read-only file system")):
            with self.assertRaises(CommandSpawnFailed):
                edit_json_in_editor([], launcher=lambda path: 0)

    def test_embedded_nul_is_spawn_failure(self):
        with self.assertRaises(CommandSpawnFailed):
            with managed_process("echo a\x00b", shell=True):
                pass

    def test_spawn_failure_is_reported(self):
        with patch("process_utils.subprocess.Popen", side_effect=FileNotFoundError("nope")):
            with self.assertRaises(CommandSpawnFailed):
                with managed_process(["does-not-exist"]):
                    pass


if __name__ == "__main__":
    unittest.main()
