class JobError(Exception):
    """A job failed at a known step; carries what the user gets to see."""

    step = "job"

    def __init__(self, diagnostic: str, step: str = None):
        if step is not None:
            self.step = step
        self.diagnostic = diagnostic
        super().__init__(f"{self.step}: {diagnostic}")


class ConfigError(JobError):
    """Unsupported repo or selector, forbidden arguments, missing flags."""

    step = "config"


class StepError(JobError):
    """A git command exited outside its allowed codes."""

    step = "git"


class BenchmarkExecutionError(JobError):
    """The benchmark process exited non-zero."""

    step = "benchmark"


class PublishError(JobError):
    """Results could not be turned into a commit on the remote branch."""

    step = "publish"


class SchedulerTimeout(JobError):
    """Gave up waiting for the working tree lock."""

    step = "schedule"
