import argparse
import json
import logging
import sys
from typing import Any, Dict, List

from core.classifier import UserAgentClassifier
from core.errors import RulesError
from models.detection import UserAgentDetection
from rules.rules_loader import DEFAULT_RULES_FILE, load_rules


def _serialize_detection(d: UserAgentDetection) -> Dict[str, Any]:
    browser = d.browser
    operating_system = d.operating_system
    return {
        "user_agent": d.user_agent,
        "browser": {
            "key": browser.key,
            "id": browser.id,
            "name": browser.name,
            "group": browser.display_group(),
            "manufacturer": browser.resolved_manufacturer().name,
            "type": browser.resolved_browser_type().name,
            "rendering_engine": browser.resolved_rendering_engine().name,
            "version": d.version._asdict() if d.version else None,
        },
        "operating_system": {
            "key": operating_system.key,
            "id": operating_system.id,
            "name": operating_system.name,
            "group": operating_system.display_group(),
            "manufacturer": operating_system.resolved_manufacturer().name,
            "device_type": operating_system.resolved_device_type().name,
        },
    }


def _read_user_agents(args: argparse.Namespace) -> List[str]:
    if args.user_agents:
        return args.user_agents
    return [line.strip() for line in sys.stdin if line.strip()]


def main():
    parser = argparse.ArgumentParser(description="Classify user agents into browser and operating system")
    parser.add_argument("user_agents", nargs="*", help="User-agent strings (read one per line from stdin if omitted)")
    parser.add_argument("--rules", type=str, default=DEFAULT_RULES_FILE, help="Path to the YAML rule set (default: bundled rules/useragent.yml)")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: WARNING)")
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    try:
        model = load_rules(args.rules)
    except RulesError as e:
        logger.error(f"Failed to load rules: {e}")
        sys.exit(1)

    classifier = UserAgentClassifier(model)
    user_agents = _read_user_agents(args)
    logger.info(f"Classifying {len(user_agents)} user agents")

    serialized = [_serialize_detection(classifier.classify(ua)) for ua in user_agents]
    print(json.dumps(serialized, indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
