"""Run the SiteBook test suite, or a single test module."""

import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent


def _pytest(target: Path) -> bool:
    cmd = [sys.executable, "-m", "pytest", str(target), "-v", "--tb=short"]
    print("Running:", " ".join(cmd))
    try:
        subprocess.run(cmd, cwd=PROJECT_ROOT, check=True)
    except subprocess.CalledProcessError as e:
        print(f"Tests failed (exit code {e.returncode})")
        return False
    except FileNotFoundError:
        print("pytest not found. Install it with: pip install -e .[test]")
        return False
    print("All tests passed")
    return True


def run_tests() -> bool:
    return _pytest(PROJECT_ROOT / "tests")


def run_specific_test(test_file: str) -> bool:
    test_path = PROJECT_ROOT / "tests" / test_file
    if not test_path.exists():
        print(f"Test file not found: {test_path}")
        return False
    return _pytest(test_path)


if __name__ == "__main__":
    success = run_specific_test(sys.argv[1]) if len(sys.argv) > 1 else run_tests()
    sys.exit(0 if success else 1)
