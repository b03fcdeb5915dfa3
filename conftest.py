import os


def pytest_sessionstart(session):
    # Keep rich progress bars on a single line in captured output.
    os.environ.setdefault("COLUMNS", "120")
