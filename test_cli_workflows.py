from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "docs" / "notes").mkdir(parents=True)
    content = b"hello world\n" * 20
    (root / "docs" / "readme.txt").write_bytes(content)
    files["docs/readme.txt"] = content

    bin_data = os.urandom(2048)
    (root / "docs" / "notes" / "binary.bin").write_bytes(bin_data)
    files["docs/notes/binary.bin"] = bin_data

    (root / "docs" / "notes" / "empty.txt").write_bytes(b"")
    files["docs/notes/empty.txt"] = b""
    return files


def _compare_trees(expected: Dict[str, bytes], dst: Path):
    found = {}
    for root, _dirs, names in os.walk(dst):
        for name in names:
            full = Path(root) / name
            found[full.relative_to(dst).as_posix()] = full.read_bytes()
    assert found == expected, f"Extracted tree differs: {sorted(found)} != {sorted(expected)}"


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "binassets.cli"] + list(args)
        env = os.environ.copy()
        env.pop("BINASSETS_KEY", None)
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\n"
                f"STDOUT:\n{proc.stdout.decode(errors='replace')}\nSTDERR:\n{proc.stderr.decode(errors='replace')}"
            )
        return proc

    def make_workspace(self):
        tmp_src = tempfile.TemporaryDirectory()
        tmp_work = tempfile.TemporaryDirectory()
        self.addCleanup(tmp_src.cleanup)
        self.addCleanup(tmp_work.cleanup)
        src_root = Path(tmp_src.name)
        files = _build_fixture_tree(src_root)
        return src_root, Path(tmp_work.name), files

    def test_plain_pack_list_cat_unpack(self):
        src_root, work, files = self.make_workspace()
        module = work / "docs_assets.py"
        pack_proc = self.run_cli(["pack", "--source", str(src_root / "docs"), "--output", str(module)])
        self.assertIn(b"Packed files from", pack_proc.stdout)
        self.assertIn(b"packing: /docs/readme.txt", pack_proc.stdout)
        self.assertTrue(module.exists())

        list_proc = self.run_cli(["list", str(module), "/docs"]).stdout.decode()
        self.assertIn("file\t240\t/docs/readme.txt", list_proc)
        self.assertIn("dir\t/docs/notes", list_proc)
        self.assertIn("file\t0\t/docs/notes/empty.txt", list_proc)
        self.assertNotIn("\tdocs/readme.txt", list_proc)

        cat_proc = self.run_cli(["cat", str(module), "docs/notes/binary.bin"])
        self.assertEqual(files["docs/notes/binary.bin"], cat_proc.stdout)

        outdir = work / "out"
        self.run_cli(["unpack", str(module), "--outdir", str(outdir), "--quiet"])
        _compare_trees(files, outdir)

    def test_unpack_selected_paths(self):
        src_root, work, files = self.make_workspace()
        module = work / "docs_assets.py"
        self.run_cli(["pack", "--source", str(src_root / "docs"), "--output", str(module), "--quiet"])
        outdir = work / "partial"
        self.run_cli(["unpack", str(module), "docs/notes", "--outdir", str(outdir)])
        _compare_trees({k: v for k, v in files.items() if k.startswith("docs/notes/")}, outdir)
        missing = self.run_cli(["unpack", str(module), "nothing/here", "--outdir", str(outdir)], expect=2)
        self.assertIn(b"No assets matched", missing.stderr)

    def test_encrypted_roundtrip(self):
        src_root, work, files = self.make_workspace()
        key = self.run_cli(["keygen", "--bits", "128"]).stdout.decode().strip()
        self.assertEqual(32, len(key))
        module = work / "secret_assets.py"
        self.run_cli(["pack", "--source", str(src_root / "docs"), "--output", str(module), "--encryption-key", key, "--quiet"])
        self.assertNotIn(b"hello world", module.read_bytes())

        no_key = self.run_cli(["list", str(module)], expect=2)
        self.assertIn(b"key or password is required", no_key.stderr)

        wrong = self.run_cli(["list", str(module), "--key", "00" * 16], expect=2)
        self.assertIn(b"failed authentication", wrong.stderr)

        cat_proc = self.run_cli(["cat", str(module), "/docs/readme.txt", "--key", key])
        self.assertEqual(files["docs/readme.txt"], cat_proc.stdout)

        outdir = work / "out"
        self.run_cli(["unpack", str(module), "--outdir", str(outdir), "--key", key])
        _compare_trees(files, outdir)

    def test_key_from_environment(self):
        src_root, work, files = self.make_workspace()
        key = "ab" * 32
        module = work / "env_assets.py"
        self.run_cli(["pack", "--source", str(src_root / "docs" / "readme.txt"), "--output", str(module), "--encryption-key", key])
        cmd = [sys.executable, "-m", "binassets.cli", "cat", str(module), "readme.txt"]
        env = os.environ.copy()
        env["BINASSETS_KEY"] = key
        env["PYTHONPATH"] = str(Path(__file__).resolve().parent)
        proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, env=env)
        self.assertEqual(0, proc.returncode, proc.stderr)
        self.assertEqual(files["docs/readme.txt"], proc.stdout)

    def test_pack_errors(self):
        src_root, work, _files = self.make_workspace()
        bad_ext = self.run_cli(["pack", "--source", str(src_root), "--output", str(work / "out.go")], expect=2)
        self.assertIn(b"Invalid output path", bad_ext.stderr)
        bad_key = self.run_cli(["pack", "--source", str(src_root), "--output", str(work / "o.py"), "--encryption-key", "xyz"], expect=2)
        self.assertIn(b"Invalid encryption key", bad_key.stderr)
        missing = self.run_cli(["pack", "--source", str(work / "missing"), "--output", str(work / "o.py")], expect=2)
        self.assertIn(b"Source not found", missing.stderr)
        both = self.run_cli(
            ["pack", "--source", str(src_root), "--output", str(work / "o.py"), "--encryption-key", "ab" * 16, "--password", "pw"],
            expect=2,
        )
        self.assertIn(b"not allowed with argument", both.stderr)
        self.assertFalse((work / "o.py").exists())

    def test_cat_errors(self):
        src_root, work, _files = self.make_workspace()
        module = work / "docs_assets.py"
        self.run_cli(["pack", "--source", str(src_root / "docs"), "--output", str(module), "--quiet"])
        not_found = self.run_cli(["cat", str(module), "/docs/missing.txt"], expect=2)
        self.assertIn(b"No such asset", not_found.stderr)
        is_dir = self.run_cli(["cat", str(module), "/docs/notes"], expect=2)
        self.assertIn(b"Is a directory", is_dir.stderr)


if __name__ == "__main__":
    unittest.main()
