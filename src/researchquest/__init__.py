"""ResearchQuest: guided research projects with points, achievements and community discovery."""

__version__ = "0.1.0"
