import asyncio
import logging
import sys

from inbound_manager import DomainChecker, PanelClient, load_checker_config, load_panel_config, panel_probe


async def check(targets: list[str]) -> None:
    config = load_checker_config()
    async with PanelClient.from_config(load_panel_config()) as client:
        checker = DomainChecker(panel_probe(client.inbounds_end), config=config)
        for target in targets:
            print(target, checker.quick_check(target).model_dump(by_alias=True, exclude_none=True))
            result = await checker.full_check(target)
            print(target, result.model_dump(by_alias=True, exclude_none=True))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(check(sys.argv[1:] or ["www.microsoft.com"]))
