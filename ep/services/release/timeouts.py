from __future__ import annotations

# GitLab REST calls
GITLAB_TIMEOUT_SECONDS = 30.0

# Idempotent GET retry policy
GITLAB_READ_RETRY_ATTEMPTS = 3
GITLAB_READ_RETRY_DELAY_SECONDS = 1.0

# Branch listing page size (GitLab maximum)
GITLAB_PAGE_SIZE = 100
