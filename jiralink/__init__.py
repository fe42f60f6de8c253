"""JiraLink: sync pull request descriptions onto Jira issues"""

__version__ = "1.0.0"
