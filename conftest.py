import os
import tempfile

# Settings are validated at import time; provide the required values first
_TMP = tempfile.mkdtemp(prefix="tender_chat_tests_")
os.environ.setdefault("CHAT_API_URL", "http://chat.test/api/chat")
os.environ.setdefault("API_BASE_URL", "http://api.test")
os.environ.setdefault("XLSX_TEMPLATE_URL", os.path.join(_TMP, "template.xlsx"))
os.environ.setdefault("CHART_DIR", os.path.join(_TMP, "charts"))
os.environ.setdefault("EXPORT_DIR", os.path.join(_TMP, "exports"))
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))
os.environ.setdefault("LIBRARY_POLL_INTERVAL_SECONDS", "0.01")
