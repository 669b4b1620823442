"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BankConfig(BaseSettings):
    """Retail banking engine configuration"""
    
    bank_name: str = "Community Bank"
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Business rules configuration
    max_transaction_amount: str = "1000000.00"
    interest_calculation_precision: int = 4
    savings_interest_rate: str = "3.5"  # Annual percent
    account_number_start: int = 10000
    loan_balance_requirement_ratio: str = "0.1"
    
    # Fraud heuristic thresholds
    fraud_balance_ratio: str = "0.8"
    fraud_daily_limit_ratio: str = "0.9"
    fraud_velocity_ratio: str = "0.5"
    fraud_velocity_window_minutes: int = 60
    
    class Config:
        env_prefix = "BANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankConfig()


def get_config() -> BankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankConfig:
    """Reload configuration from environment"""
    global config
    config = BankConfig()
    return config
