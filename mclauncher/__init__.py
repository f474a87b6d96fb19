"""Download, assemble and launch Minecraft versions, including Fabric loader profiles."""

__version__ = "1.0.0"

USER_AGENT = f"mclauncher/{__version__}"
