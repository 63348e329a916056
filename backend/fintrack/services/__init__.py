"""
Domain services.

    recurrence_calculator - occurrence dates for a recurring template
    transaction_store     - persistence interface used by the recurrence service
    recurrence_service    - materializes missing occurrences for a user
    event_publisher       - Redis Pub/Sub notifications for background runs
"""
