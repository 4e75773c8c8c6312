from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Declares one configuration key a client reads from the environment.

    Attributes:
        env_key (str): Raw key name; the client prefixes it (e.g. "ACCESS_TOKEN" -> "STORE_HUBSPOT_ACCESS_TOKEN").
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | bool | list | None): Value used when the key is unset. None makes the key mandatory.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
