"""Prompt templates for log analysis conversations."""

from typing import List, Sequence

from loglens.context.store import SystemInfo

SYSTEM_PROMPT = """# Role
You are an expert in system log analysis. You diagnose problems in logs from
many kinds of systems: Atlassian products, web servers, databases, application
servers and more.

# Tone
- Explain clearly and kindly
- Make technical content easy to follow
- Adapt answers to the user's technical level
- Say so explicitly when something is a guess

# Analysis principles
- When the cause is clear, state it and give a concrete fix
- When the cause is unclear, list candidate causes and explain how to narrow them down
- Always give step-by-step guidance and put commands in code blocks

# Follow-up conversation
- Keep the earlier analysis and conversation in mind
- Answer the user's specific questions in detail
- Ask precisely for any additional information you need
- When a new log file is uploaded, compare it with the earlier logs

# Response format
- Use Markdown
- Put commands in fenced code blocks (```)
- Structure answers with headings, lists and tables
- Mark important points in **bold**"""

SUMMARIZATION_PROMPT = """You condense log analysis conversations into structured summaries.
Compress the conversation below into a summary.

## Rules
1. **Always preserve:**
   - Error codes (e.g. HTTP 500, ORA-12541, ECONNREFUSED)
   - File names and line numbers
   - Concrete configuration values, paths and commands
   - Root-cause findings and fixes
   - Actions the user has already tried

2. **Format:**
   ### Issues found
   - [Severity] description (error code, location)

   ### Analysis
   - Cause: ...
   - Fix: ...

   ### User actions
   - What the user tried and what happened

   ### Open items
   - Current state of the troubleshooting

3. **If a previous summary is provided:** merge it into a single combined summary.
4. Be concise but never drop technical details."""

SUMMARY_CONTEXT_HEADER = "[Summary of the earlier conversation]"
SUMMARY_CONTEXT_FOOTER = "[End of summary - the most recent messages follow]"
SUMMARY_ACKNOWLEDGEMENT = (
    "Understood. I will keep the summarized earlier analysis in mind "
    "while continuing the conversation."
)

INITIAL_ANALYSIS_FALLBACK = (
    "The automatic analysis could not be completed. "
    "Please ask a question about the uploaded logs to continue."
)

ANALYSIS_REQUEST = """## Analysis request
Analyze the log files above and answer in the following format:

### 1. Summary
Describe the overall state of the logs in 2-3 sentences.

### 2. Issues found
List each issue in this table:

| Severity | Issue | Location | Occurrences |
|----------|-------|----------|-------------|
| Critical/High/Medium/Low | description | file:line | N |

**Severity levels:**
- **Critical**: service outage or risk of data loss
- **High**: major feature failure or severe performance degradation
- **Medium**: partial malfunction or warnings
- **Low**: informational or improvement suggestion

### 3. Root cause analysis
For each issue:
- **Symptom**: what the logs show
- **Possible causes**: the specific cause if clear, otherwise the candidates
- **Evidence**: what the estimate is based on

### 4. Resolution
Step-by-step guidance per issue:
1. First step
   ```bash
   command
   ```
2. Second step
   ...

### 5. Further information needed
Tell me which additional information or logs would make the analysis more accurate."""


def _system_info_lines(system_info: SystemInfo, include_notes: bool = True) -> List[str]:
    fields = [
        ("Operating system", system_info.os),
        ("Application", system_info.app_name),
        ("Version", system_info.app_version),
        ("Environment", system_info.environment),
    ]
    if include_notes:
        fields.append(("Notes", system_info.notes))
    return [f"{label}: {value}" for label, value in fields if value]


def build_initial_analysis_prompt(system_info: SystemInfo, files: Sequence) -> str:
    """Build the first-turn request from system info and budgeted file contents.

    ``files`` may be any objects with ``filename`` and ``content`` attributes.
    """
    info_lines = _system_info_lines(system_info)
    info_text = "\n".join(f"- {line}" for line in info_lines)

    files_text = "\n".join(
        f"\n### {file.filename}\n```\n{file.content}\n```\n" for file in files
    )

    return (
        f"## System information\n{info_text or 'No system information provided'}\n\n"
        f"## Log files\n{files_text}\n\n"
        f"{ANALYSIS_REQUEST}"
    )


def build_follow_up_context(system_info: SystemInfo, files: Sequence) -> str:
    """One-paragraph reminder of the session for follow-up turns."""
    info_text = " | ".join(_system_info_lines(system_info, include_notes=False))
    file_list = ", ".join(file.filename for file in files)

    return (
        "## Session context\n"
        f"- {info_text or 'No system information provided'}\n"
        f"- Files under analysis: {file_list or 'none'}\n\n"
        "Use the earlier conversation to keep your answers consistent."
    )


def build_summarization_request(conversation: str, previous_summary: str = "") -> str:
    """User-turn body for a summarization call."""
    if previous_summary:
        return (
            f"## Previous summary\n{previous_summary}\n\n"
            f"## New conversation\n{conversation}\n\n"
            "Merge the previous summary and the new conversation into one summary."
        )
    return f"## Conversation\n{conversation}\n\nSummarize the conversation above."
