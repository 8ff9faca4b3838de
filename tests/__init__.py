"""
Test package for GameGuard

Tests run against temporary data directories and fake process probes so
they never touch the user's real config, logs or running programs.

Test modules:
- test_engine.py: Enforcement engine scenarios (grace, warnings, termination)
- test_time_utils.py: Blocked window evaluation
- test_config_manager.py: Config load/validate/save and hot reload
- test_utils.py: Fakes and helpers shared by the other modules
"""

from gameguard.versioning import VERSION

__version__ = VERSION
