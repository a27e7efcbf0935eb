from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./projects.db"
    COMPANY_NAME: str = "Smart Home Projects"
    COMPANY_EMAIL: str = "hello@smarthome.ng"
    CURRENCY: str = "NGN"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
