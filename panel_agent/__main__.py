"""
Allow running the agent as a module: python -m panel_agent
"""
from panel_agent.agent import main

if __name__ == '__main__':
    main()
