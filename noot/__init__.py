"""
noot: drop a PDF, page through it, and ask a language model about it.

The FastAPI server forwards extracted document text to an OpenAI-compatible
chat-completion API for a summary or a handful of annotations.  The
``DocumentController`` plays the viewer's part: it extracts text with pypdf,
rasterizes pages with PyMuPDF, and calls the server's endpoints.
"""

__version__ = "0.1.0"
