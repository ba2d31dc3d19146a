import logging

import yaml
from pydantic import BaseModel, ConfigDict, model_validator

from bn128_utils import blake2s_digest, sha3_256_digest, sha256_digest

logger = logging.getLogger(__name__)

HASH_FUNCTIONS = {
    "sha256": sha256_digest,
    "sha3_256": sha3_256_digest,
    "blake2s": blake2s_digest,
}


def get_hash_function(name: str):
    if name not in HASH_FUNCTIONS:
        raise ValueError(
            f"Unknown hash function '{name}', expected one of {sorted(HASH_FUNCTIONS)}"
        )
    return HASH_FUNCTIONS[name]


# Pydantic V2 style
class ThresholdConfigSchema(BaseModel):
    t: int
    n: int
    hash_function: str = "sha256"

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_threshold(self) -> "ThresholdConfigSchema":
        if self.n < 1:
            raise ValueError(f"Number of participants {self.n} must be at least 1")
        if self.t < 1 or self.t > self.n:
            raise ValueError(f"Threshold {self.t} must be between 1 and {self.n}")
        get_hash_function(self.hash_function)
        return self


def load_threshold_config(file_path="threshold_config.yaml", config_override=None):
    """Load and validate the threshold parameters, from a dict or a YAML file."""
    if config_override is None:
        with open(file_path, "r") as f:
            config_override = yaml.load(f, Loader=yaml.FullLoader)["threshold"]
        logger.info("Loaded threshold configuration from '%s'.", file_path)

    config = ThresholdConfigSchema(**config_override)
    logger.info(
        "Threshold configuration: %s-of-%s, hash %s",
        config.t,
        config.n,
        config.hash_function,
    )
    return config
