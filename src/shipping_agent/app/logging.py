import logging

from shipping_agent.infrastructure.data_models import ModelDecision


def log_decision(decision: ModelDecision, logger: logging.Logger) -> None:
    logger.info(f"Decision made by model: {decision.model_version or 'Unknown'}")
    logger.info(f"Usage: {decision.usage or 'Unknown'}")
    if decision.wants_action:
        for call in decision.calls:
            logger.info(f"Action requested: {call.action_name} {call.arguments}")
    else:
        logger.info(f"Text reply: {decision.text[:200]}")
