#!/usr/bin/env python
"""
Run the Django test suite for every app, or only the labels given
Usage: python backend/run_tests.py [backend.catalog backend.pos ...]
"""
import os
import sys
from pathlib import Path

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'backend.core',
    'backend.catalog',
    'backend.inventory',
    'backend.pos',
]

if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(sys.argv[1:] or APPS)
    sys.exit(bool(failures))
