from .kernel import CalystoLC3Sim

if __name__ == '__main__':
    CalystoLC3Sim.run_as_main()
