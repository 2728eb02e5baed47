from prometheus_client import Counter


reminders_listed_total = Counter(
    "reminders_listed_total",
    "Total visible-reminder list calls",
)

reminders_delivered_total = Counter(
    "reminders_delivered_total",
    "Total reminders marked delivered by the list call",
)

reminders_read_total = Counter(
    "reminders_read_total",
    "Total reminders acknowledged by clients",
)

reminders_snoozed_total = Counter(
    "reminders_snoozed_total",
    "Total reminders snoozed",
    ["duration"],
)

reminders_dismissed_total = Counter(
    "reminders_dismissed_total",
    "Total reminders dismissed, individually or in bulk",
)
