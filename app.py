#!/usr/bin/env python3
import logging
import os

import aws_cdk as cdk
from dotenv import load_dotenv

from budget_tracker.budget_tracker_stack import BudgetTrackerStack
from budget_tracker.config import load_config

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S%z'
)

app = cdk.App()
config = load_config(app)

BudgetTrackerStack(app, "BudgetTrackerStack", config=config)

app.synth()
