from dose_gym import DoseEnv
from autoplanner.sarsa import SarsaAgent
from autoplanner.q_table import ACTION_NAMES

env = DoseEnv(seed=0)
agent = SarsaAgent(seed=0)

alpha, gamma, eps = 0.1, 0.9, 0.3
obs, _ = env.reset()
action = agent.act(obs, eps)
for t in range(20):
    next_obs, reward, *_ = env.step(action)
    next_action = agent.act(next_obs, eps)
    agent.update(obs, action, reward, next_obs, next_action, alpha, gamma)
    print(f"t={t:2d} | a={ACTION_NAMES[action]:<8} | dose={next_obs:6.2f} | r={reward:+.2f}")
    obs, action = next_obs, next_action
