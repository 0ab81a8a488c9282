from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


ANALYSES_TOTAL = get_or_create_metric(
    "scheduler_analyses_total",
    "Total scheduling analyses",
    Counter,
    labelnames=["status"],
)

ANALYSIS_LATENCY_SECONDS = get_or_create_metric(
    "scheduler_analysis_latency_seconds",
    "Time spent placing tasks for one analysis",
    Histogram,
)

TASKS_PLACED_TOTAL = get_or_create_metric(
    "scheduler_tasks_placed_total",
    "Task assignments produced (split parts counted individually)",
    Counter,
    labelnames=["category"],
)

TASKS_UNSCHEDULED_TOTAL = get_or_create_metric(
    "scheduler_tasks_unscheduled_total", "Tasks left unscheduled", Counter
)

TASK_SPLITS_TOTAL = get_or_create_metric(
    "scheduler_task_splits_total",
    "Oversized tasks split across blocks",
    Counter,
    labelnames=["outcome"],
)

SCHEDULE_WRITES_TOTAL = get_or_create_metric(
    "scheduler_schedule_writes_total",
    "Schedule write-backs to the task store",
    Counter,
    labelnames=["status"],
)
