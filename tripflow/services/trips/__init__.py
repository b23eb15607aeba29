"""Trip status workflow: guards, attachments, messages and orchestration."""
