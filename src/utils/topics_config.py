import json
import logging
from json import JSONDecodeError
from typing import List, Optional

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class TopicsConfig(BaseModel):
    topics: List[str] = []


def load_topics_config(path: Optional[str]) -> TopicsConfig:
    """
    Reads the optional topics file, which looks like {"topics": ["topic-a", "topic-b"]}.

    A broken file is not worth crashing the service over, so anything that goes wrong here is logged and we carry
    on with an empty topic list.
    """
    if not path:
        return TopicsConfig()

    try:
        with open(path, encoding="utf-8") as config_file:
            raw_config = json.load(config_file)
        config = TopicsConfig(**raw_config)
    except OSError as e:
        logger.error("Could not read topics config file %s. Error: %s", path, e)
        return TopicsConfig()
    except (JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("Topics config file %s is not valid UTF-8 JSON. Error: %s", path, e)
        return TopicsConfig()
    except (TypeError, ValidationError) as e:
        logger.error("Topics config file %s has an unexpected shape. Error: %s", path, e)
        return TopicsConfig()

    topics = [topic for topic in config.topics if topic.strip()]
    if len(topics) != len(config.topics):
        logger.warning("Dropped %s blank topic names from %s", len(config.topics) - len(topics), path)
    logger.info("Loaded %s topics from %s", len(topics), path)
    return TopicsConfig(topics=topics)
