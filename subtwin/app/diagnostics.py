from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown translation error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown translation error."
    for ln in reversed(lines):
        if ln.startswith("File "):
            continue
        if ln.startswith("^"):
            continue
        if ln.startswith("Traceback "):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str, code: str | None = None) -> str:
    s = str(summary or "").lower()
    if code == "missing_credential":
        return "Set the API key (and App ID for Baidu) for this provider in Settings."
    if code == "unsupported_language" or "source language" in s:
        return "Pick an explicit source language or a provider that supports auto-detect."
    if "(401)" in s or "(403)" in s or "unauthorized" in s or "forbidden" in s:
        return "The provider rejected the credentials. Check the API key and endpoint."
    if "(429)" in s or "rate limit" in s or "too many requests" in s:
        return "Provider rate limit hit. Wait, or switch to another provider."
    if "(456)" in s or "quota" in s:
        return "Provider quota exhausted for this billing period."
    if "timeout" in s:
        return "The provider did not answer in time. Check the network or raise request_timeout_sec."
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    return "Check logs for full traceback."
