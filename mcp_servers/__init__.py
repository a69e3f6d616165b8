"""
mcp_servers package — programmatic tool registry

Imports every plugin module in mcp_servers/ and aggregates their
TOOL_REGISTRY dicts into GLOBAL_TOOL_REGISTRY, which the agent attaches
as callable tools.
"""

import os
import importlib
import logging

logger = logging.getLogger(__name__)

GLOBAL_TOOL_REGISTRY = {}
PLUGIN_METADATA = {}


def load_plugins() -> dict:
    plugin_dir = os.path.dirname(__file__)

    for filename in sorted(os.listdir(plugin_dir)):
        if not filename.endswith(".py") or filename == "__init__.py":
            continue
        module_name = filename[:-3]
        if module_name in PLUGIN_METADATA:
            continue
        try:
            module = importlib.import_module(f"mcp_servers.{module_name}")
        except Exception as e:
            logger.error(f"❌ Failed to load plugin {module_name}: {e}")
            continue
        registry = getattr(module, "TOOL_REGISTRY", None)
        if isinstance(registry, dict):
            GLOBAL_TOOL_REGISTRY.update(registry)
            PLUGIN_METADATA[module_name] = {"tools": list(registry.keys())}
            logger.info(f"✅ Loaded {len(registry)} tools from plugin: {module_name}")

    return GLOBAL_TOOL_REGISTRY
