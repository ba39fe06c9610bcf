import importlib.util
import sys
import tempfile
import unittest
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "seed_demo_data.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("seed_demo_data", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


class SeedDemoDataTests(unittest.TestCase):
    def test_seed_runs_every_entity_type(self):
        seed = _load_script()
        with tempfile.TemporaryDirectory() as tmp:
            result = seed.seed_demo_db(Path(tmp) / "demo.db", overwrite=True)

        report = result.report
        self.assertEqual(report["status"], "success")
        counts = {s["entity_type"]: s["count"] for s in report["steps"]}
        self.assertEqual(counts["projects"], 2)
        self.assertEqual(counts["issues"], 3)
        self.assertEqual(counts["permissions"], 2)
        self.assertEqual(counts["labels"], 3)
        self.assertEqual(counts["comments"], 1)
        self.assertEqual(counts["attachments"], 1)
        self.assertEqual(counts["issue_links"], 1)


if __name__ == "__main__":
    unittest.main()
