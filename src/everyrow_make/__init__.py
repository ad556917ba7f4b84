"""
EveryRow Make Toolkit (erm) - Deploy and test tooling for the EveryRow Make.com app

Works with the app's module definitions:
- Deploys base, common, connections, modules and RPCs through the Make SDK API
- Validates module definition structure and parameter typing
- Simulates IML template rendering for module communication
- Runs end-to-end smoke flows against the EveryRow API
"""

__version__ = "0.1.0"
__package_name__ = "everyrow-make-toolkit"
__short_name__ = "erm"
