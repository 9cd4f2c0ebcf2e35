from pathlib import Path

# Test directories for isolated testing
TEST_FILES_DIR = Path("test_files").absolute()
TEST_PUBLIC_DIR = Path("test_public").absolute()

INDEX_HTML = "<html><body>Welcome to the test file server</body></html>"
