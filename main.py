"""
Main entry point for the PKI Agent
"""
import argparse
import os


def run_pki_agent(host=None, port=None):
    """Run the PKI agent"""
    from src.pki_agent.main import run_pki_agent
    store_backend = os.getenv("PKI_AGENT_STORE_BACKEND", "memory")
    run_pki_agent(store_backend=store_backend, host=host, port=port)


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="PKI Agent")
    parser.add_argument(
        "--store",
        choices=["memory", "aws"],
        default=os.getenv("PKI_AGENT_STORE_BACKEND", "memory"),
        help="Certificate store backend"
    )
    parser.add_argument("--host", default=None, help="Host to bind the server to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind the server to")

    args = parser.parse_args()

    print(f"Starting PKI Agent with {args.store} store...")
    os.environ["PKI_AGENT_STORE_BACKEND"] = args.store
    run_pki_agent(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
