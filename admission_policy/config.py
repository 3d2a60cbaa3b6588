import os


class Config:
    def __init__(self):
        self.log_level = os.getenv('KURE_POLICY_LOG_LEVEL', 'INFO')
        self.disabled_rules = [
            rule_id.strip()
            for rule_id in os.getenv('KURE_POLICY_DISABLED_RULES', '').split(',')
            if rule_id.strip()
        ]
        # "enforce" denies non-compliant pods, "audit" admits them with warnings
        self.mode = os.getenv('KURE_POLICY_MODE', 'enforce').lower()
        self.host = os.getenv('KURE_POLICY_HOST', '0.0.0.0')
        self.port = int(os.getenv('KURE_POLICY_PORT', '8443'))
        self.max_workers = int(os.getenv('KURE_POLICY_MAX_WORKERS', '1'))
