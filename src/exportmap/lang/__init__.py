# Importing the back-ends registers them with SourceParserRegistry.
from exportmap.lang import javascript, typescript  # noqa: F401
