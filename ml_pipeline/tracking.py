import mlflow
import structlog

from ml_pipeline.config import MLConfig

logger = structlog.get_logger()


class RunTracker:
    """
    Records one pipeline run in MLflow: params, metrics, model summary text.
    The fitted model itself is not logged; only its summary leaves the run.
    """

    def __init__(self, config: MLConfig):
        self.config = config
        self.enabled = config.tracking_enabled
        if not self.enabled:
            logger.info("mlflow_tracking_disabled")
            return

        mlflow.set_tracking_uri(config.mlflow_tracking_uri)
        mlflow.set_experiment(config.mlflow_experiment_name)
        # Spark ML autologging would log the model artifact
        mlflow.autolog(disable=True)

    def log_run(self, params: dict, metrics: dict, summary_text: str = None):
        """Returns the MLflow run id, or None when tracking is disabled."""
        if not self.enabled:
            return None

        clean_params = {k: v for k, v in params.items() if isinstance(v, (str, int, float, bool))}
        clean_metrics = {k: float(v) for k, v in metrics.items() if v is not None}

        try:
            with mlflow.start_run() as run:
                mlflow.log_params(clean_params)
                mlflow.log_metrics(clean_metrics)
                if summary_text:
                    mlflow.log_text(summary_text, "model_summary.txt")
                logger.info("run_logged", run_id=run.info.run_id)
                return run.info.run_id
        except Exception as e:
            logger.error("mlflow_log_failed", error=str(e))
            raise e
