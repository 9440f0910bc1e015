import os
import sys

# add crossover_engine_py to sys.path for tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../services/crossover_engine_py')))
