"""
TaskFlow Services Package - task rules shared by the API and the guest mode

Core Services:
- task_query: Task list filtering, sorting and pagination (SQL and in-memory)
- task_lifecycle: Ordering, duplication, toggle and batch id rules
- share_links: Public share link lifecycle
- guest_store: Capped in-memory task lists for guest sessions
- api_client: Typed async HTTP client for the TaskFlow API
"""
