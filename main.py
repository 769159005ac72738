import asyncio

from xornet import InvestigationLoop, Config

if __name__ == "__main__":
    config = Config()
    investigation_loop = InvestigationLoop(config)
    asyncio.run(investigation_loop.run_investigation())
